"""
REST API for the timetable optimizer.
Provides HTTP endpoints for slot calculation, conflict detection and
proposal generation, plus background optimization jobs.
"""
import os
import shutil
import uuid
import logging
import time
from dataclasses import replace
from typing import Any, Dict
from flask import Flask, request, jsonify, send_file, abort
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
from werkzeug.utils import secure_filename
from threading import Thread

import numpy as np

from .config import load_config
from .exceptions import InvalidProjectData, InvalidSettings
from .data.converter import DataConverter
from .data.loader import DEFAULT_PROJECT, merge_defaults
from .algorithms.timeslots import compute_slots
from .algorithms.conflicts import detect_conflicts
from .algorithms.proposals import ProposalGenerator
from .optimizer import TimetableOptimizer

# Configure logging
logging.basicConfig(level=logging.INFO,
                    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

config = load_config()

# Create Flask app
app = Flask(__name__)
CORS(app)  # Enable CORS for all routes

# Configure app
app.config['UPLOAD_FOLDER'] = config.upload_folder
app.config['RESULTS_FOLDER'] = config.results_folder
app.config['MAX_CONTENT_LENGTH'] = 16 * 1024 * 1024  # 16 MB limit

# Create directories if they don't exist
os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)
os.makedirs(app.config['RESULTS_FOLDER'], exist_ok=True)

# Dictionary to store optimization jobs
jobs = {}

converter = DataConverter()


@app.errorhandler(InvalidSettings)
@app.errorhandler(InvalidProjectData)
def handle_invalid_input(error):
    return jsonify({'error': type(error).__name__, 'message': str(error)}), 400


@app.errorhandler(HTTPException)
def handle_http_error(error):
    return jsonify({'error': error.name, 'message': error.description}), error.code


def _json_body() -> Dict[str, Any]:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        abort(400, description="Request body must be a JSON object")
    return body


def _int_param(body: Dict[str, Any], name: str, default):
    value = body.get(name)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        abort(400, description=f"{name} must be an integer")
    return value


def _seed_param(value):
    if value is None:
        return config.seed
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        abort(400, description="seed must be a non-negative integer")
    return value


@app.route('/api/v1/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({
        'status': 'healthy',
        'timestamp': time.time()
    })


@app.route('/api/v1/slots', methods=['POST'])
def slots():
    """Compute the slot sequence for posted time settings."""
    settings = converter.convert_settings(_json_body())
    return jsonify({
        'slots': [converter.slot_to_dict(s) for s in compute_slots(settings)]
    })


@app.route('/api/v1/conflicts', methods=['POST'])
def conflicts():
    """Detect conflicts in a posted project."""
    project = converter.convert_project(merge_defaults(DEFAULT_PROJECT, _json_body()))
    slot_list = compute_slots(project.settings)
    found = detect_conflicts(project.schedule, project.teacher_ids, project.classes, slot_list)
    return jsonify({
        'conflicts': converter.conflicts_to_list(found),
        'count': len(found)
    })


@app.route('/api/v1/proposals', methods=['POST'])
def proposals():
    """Generate proposals for a posted project synchronously."""
    body = _json_body()
    data = body.get('project', body)
    if not isinstance(data, dict):
        abort(400, description="project must be a JSON object")
    project = converter.convert_project(merge_defaults(DEFAULT_PROJECT, data))
    slot_list = compute_slots(project.settings)

    seed = _seed_param(body.get('seed'))
    iterations = _int_param(body, 'iterations', config.iterations)
    attempts = _int_param(body, 'attempts', config.attempts)
    if iterations <= 0 or attempts <= 0:
        abort(400, description="iterations and attempts must be positive")

    generator = ProposalGenerator(
        classes=project.classes,
        slots=slot_list,
        attempts=attempts,
        max_proposals=config.max_proposals,
        iterations=iterations,
        rng=np.random.default_rng(seed)
    )
    found = generator.generate(project.schedule)
    current = detect_conflicts(project.schedule, project.teacher_ids, project.classes, slot_list)

    return jsonify({
        'currentConflicts': len(current),
        'alreadyOptimal': not found,
        'proposals': [converter.proposal_to_dict(p) for p in found]
    })


@app.route('/api/v1/jobs', methods=['GET'])
def list_jobs():
    """List optimization jobs."""
    return jsonify({
        'jobs': list(jobs.values())
    })


@app.route('/api/v1/jobs/<job_id>', methods=['GET'])
def get_job(job_id):
    """Get details of a specific job."""
    if job_id not in jobs:
        abort(404, description=f"Job {job_id} not found")

    return jsonify(jobs[job_id])


@app.route('/api/v1/jobs/<job_id>/download/<file_type>', methods=['GET'])
def download_result(job_id, file_type):
    """Download a result file from a job."""
    if job_id not in jobs:
        abort(404, description=f"Job {job_id} not found")

    job = jobs[job_id]

    if job['status'] != 'completed':
        abort(400, description=f"Job {job_id} is not completed")

    output_files = job['results'].get('output_files', {})
    if file_type not in output_files:
        abort(400, description=f"Invalid file type: {file_type}")

    file_path = output_files[file_type]
    file_name = os.path.basename(file_path)

    if not os.path.exists(file_path):
        abort(404, description=f"File {file_name} not found")

    mimetype = 'application/json' if file_name.endswith('.json') else 'text/csv'
    return send_file(file_path,
                     mimetype=mimetype,
                     as_attachment=True,
                     download_name=file_name)


def run_optimization_job(job_id: str, input_path: str, output_dir: str, seed):
    """Run an optimization job in a separate thread."""
    try:
        jobs[job_id]['status'] = 'processing'

        job_config = replace(config, seed=seed)

        optimizer = TimetableOptimizer(
            input_path=input_path,
            output_dir=output_dir,
            config=job_config
        )

        results = optimizer.optimize()

        jobs[job_id].update({
            'status': 'completed' if results['success'] else 'failed',
            'results': results,
            'completed_at': time.time()
        })

        logger.info(f"Job {job_id} completed with status: {jobs[job_id]['status']}")

    except Exception as e:
        logger.error(f"Error in job {job_id}: {str(e)}")

        jobs[job_id].update({
            'status': 'failed',
            'error': str(e),
            'completed_at': time.time()
        })


@app.route('/api/v1/optimize', methods=['POST'])
def optimize():
    """Submit a new optimization job for an uploaded project file."""
    if 'file' not in request.files:
        abort(400, description="No project file provided")

    upload = request.files['file']
    if not upload.filename:
        abort(400, description="No project file selected")

    filename = secure_filename(upload.filename)
    if not filename.endswith('.json'):
        abort(400, description=f"Project file must be JSON: {filename}")

    seed = request.form.get('seed')
    try:
        seed = _seed_param(int(seed) if seed not in (None, '') else None)
    except ValueError:
        abort(400, description=f"Invalid seed: {seed}")

    job_id = str(uuid.uuid4())
    job_input_dir = os.path.join(app.config['UPLOAD_FOLDER'], job_id)
    job_output_dir = os.path.join(app.config['RESULTS_FOLDER'], job_id)

    os.makedirs(job_input_dir, exist_ok=True)
    os.makedirs(job_output_dir, exist_ok=True)

    input_path = os.path.join(job_input_dir, filename)
    upload.save(input_path)

    job = {
        'id': job_id,
        'status': 'pending',
        'seed': seed,
        'input_dir': job_input_dir,
        'output_dir': job_output_dir,
        'file': filename,
        'created_at': time.time(),
        'started_at': None,
        'completed_at': None
    }

    jobs[job_id] = job

    job['started_at'] = time.time()
    thread = Thread(target=run_optimization_job,
                    args=(job_id, input_path, job_output_dir, seed))
    thread.start()

    return jsonify({
        'job_id': job_id,
        'status': 'pending',
        'message': 'Optimization job submitted successfully'
    }), 202  # 202 Accepted


@app.route('/api/v1/jobs/<job_id>', methods=['DELETE'])
def delete_job(job_id):
    """Delete a job and its files."""
    if job_id not in jobs:
        abort(404, description=f"Job {job_id} not found")

    job = jobs[job_id]

    if job['status'] not in ['completed', 'failed']:
        abort(400, description=f"Cannot delete job {job_id} with status {job['status']}")

    if os.path.exists(job['input_dir']):
        shutil.rmtree(job['input_dir'])

    if os.path.exists(job['output_dir']):
        shutil.rmtree(job['output_dir'])

    del jobs[job_id]

    return jsonify({
        'message': f"Job {job_id} deleted successfully"
    })


def create_app():
    """Create the Flask application."""
    return app


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    app.run(host='0.0.0.0', port=port)
