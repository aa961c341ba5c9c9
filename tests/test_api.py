"""
Tests for the REST API.
"""
import io
import json
import time

import pytest

from timetable_optimizer import api

PROJECT = {
    'teachers': [{'id': 't1', 'name': 'Ahmad'}, {'id': 't2', 'name': 'Mariam'}],
    'classes': [{'id': 'c1', 'name': '7A'}, {'id': 'c2', 'name': '7B'}],
    'schedule': {
        'c1_slot-0': {'subject': 'Math', 'teacherId': 't1'},
        'c2_slot-0': {'subject': 'Math', 'teacherId': 't1'},
        'c2_slot-1': {'subject': 'Physics', 'teacherId': 't2'},
    },
    'settings': {'totalLessons': 4, 'lessonsBeforeBreak': 2},
}


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setitem(api.app.config, 'UPLOAD_FOLDER', str(tmp_path / 'uploads'))
    monkeypatch.setitem(api.app.config, 'RESULTS_FOLDER', str(tmp_path / 'results'))
    api.app.config['TESTING'] = True
    with api.app.test_client() as client:
        yield client
    api.jobs.clear()


def wait_for_job(client, job_id, timeout=30):
    deadline = time.time() + timeout
    while time.time() < deadline:
        job = client.get(f'/api/v1/jobs/{job_id}').get_json()
        if job['status'] in ('completed', 'failed'):
            return job
        time.sleep(0.05)
    pytest.fail(f"Job {job_id} did not finish")


class TestSyncEndpoints:
    """Test the request/response endpoints."""

    def test_health(self, client):
        response = client.get('/api/v1/health')
        assert response.status_code == 200
        assert response.get_json()['status'] == 'healthy'

    def test_slots(self, client):
        response = client.post('/api/v1/slots', json={
            'startTime': '08:00', 'lessonDuration': 45, 'breakDuration': 15,
            'lessonsBeforeBreak': 2, 'totalLessons': 4,
        })

        slots = response.get_json()['slots']
        assert [s['id'] for s in slots] == ['slot-0', 'slot-1', 'break-1', 'slot-2', 'slot-3']
        assert slots[2]['label'] == 'Break'
        assert slots[4]['end'] == '11:15'

    def test_invalid_settings(self, client):
        response = client.post('/api/v1/slots', json={'totalLessons': 0})

        assert response.status_code == 400
        assert response.get_json()['error'] == 'InvalidSettings'

    def test_body_must_be_object(self, client):
        response = client.post('/api/v1/slots', data='[1]', content_type='application/json')
        assert response.status_code == 400

    def test_conflicts(self, client):
        data = client.post('/api/v1/conflicts', json=PROJECT).get_json()

        assert data['count'] == 2
        assert data['conflicts'] == ['c1_slot-0', 'c2_slot-0']

    def test_proposals(self, client):
        data = client.post('/api/v1/proposals', json={'project': PROJECT, 'seed': 5}).get_json()

        assert data['currentConflicts'] == 2
        assert data['alreadyOptimal'] is False
        assert data['proposals'][0]['conflictCount'] == 0
        assert data['proposals'][0]['best'] is True

    def test_proposals_reproducible(self, client):
        first = client.post('/api/v1/proposals', json={'project': PROJECT, 'seed': 9}).get_json()
        second = client.post('/api/v1/proposals', json={'project': PROJECT, 'seed': 9}).get_json()

        assert [p['schedule'] for p in first['proposals']] == [p['schedule'] for p in second['proposals']]

    def test_proposals_already_optimal(self, client):
        clean = dict(PROJECT, schedule={'c1_slot-0': {'subject': 'Math', 'teacherId': 't1'}})
        data = client.post('/api/v1/proposals', json=clean).get_json()

        assert data['currentConflicts'] == 0
        assert data['alreadyOptimal'] is True
        assert data['proposals'] == []

    def test_proposals_bad_parameter(self, client):
        response = client.post('/api/v1/proposals', json={'project': PROJECT, 'iterations': 'lots'})
        assert response.status_code == 400

    def test_proposals_negative_seed(self, client):
        response = client.post('/api/v1/proposals', json={'project': PROJECT, 'seed': -1})

        assert response.status_code == 400
        assert 'seed' in response.get_json()['message']

    def test_invalid_project(self, client):
        response = client.post('/api/v1/conflicts', json={'schedule': {'badkey': {'subject': 'Math'}}})

        assert response.status_code == 400
        assert response.get_json()['error'] == 'InvalidProjectData'


class TestJobs:
    """Test background optimization jobs."""

    def submit(self, client, payload, filename='project.json', seed='3'):
        return client.post('/api/v1/optimize', data={
            'file': (io.BytesIO(json.dumps(payload).encode('utf-8')), filename),
            'seed': seed,
        }, content_type='multipart/form-data')

    def test_job_lifecycle(self, client):
        response = self.submit(client, PROJECT)
        assert response.status_code == 202
        job_id = response.get_json()['job_id']

        job = wait_for_job(client, job_id)
        assert job['status'] == 'completed'
        assert job['seed'] == 3
        assert job['results']['schedule_summary']['conflicts'] == 2

        listed = client.get('/api/v1/jobs').get_json()['jobs']
        assert [j['id'] for j in listed] == [job_id]

        download = client.get(f'/api/v1/jobs/{job_id}/download/proposals')
        assert download.status_code == 200
        assert json.loads(download.data)['currentConflicts'] == 2

        csv_download = client.get(f'/api/v1/jobs/{job_id}/download/conflict_report')
        assert csv_download.mimetype == 'text/csv'

        assert client.get(f'/api/v1/jobs/{job_id}/download/nope').status_code == 400

        assert client.delete(f'/api/v1/jobs/{job_id}').status_code == 200
        assert client.get(f'/api/v1/jobs/{job_id}').status_code == 404

    def test_failed_job(self, client):
        job_id = self.submit(client, dict(PROJECT, settings={'lessonDuration': -5})).get_json()['job_id']

        job = wait_for_job(client, job_id)

        assert job['status'] == 'failed'
        assert 'lesson_duration' in job['results']['error']

    def test_rejects_non_json_upload(self, client):
        assert self.submit(client, PROJECT, filename='project.txt').status_code == 400

    def test_rejects_bad_seed(self, client):
        assert self.submit(client, PROJECT, seed='x').status_code == 400
        assert self.submit(client, PROJECT, seed='-4').status_code == 400
        assert api.jobs == {}

    def test_missing_file(self, client):
        assert client.post('/api/v1/optimize', data={}).status_code == 400

    def test_unknown_job(self, client):
        assert client.get('/api/v1/jobs/missing').status_code == 404
