# Initialize algorithms package
from . import timeslots
from . import conflicts
from . import hill_climbing
from . import proposals

__all__ = ['timeslots', 'conflicts', 'hill_climbing', 'proposals']
