"""
Repair pattern detectors.
"""

from .error_handling import ErrorHandlingDetector
from .callback_error import CallbackErrorDetector
from .special_value import SpecialType, SpecialTypeMap, SpecialValueDetector

__all__ = [
    'ErrorHandlingDetector',
    'CallbackErrorDetector',
    'SpecialType',
    'SpecialTypeMap',
    'SpecialValueDetector',
    'DETECTOR_REGISTRY',
    'default_detectors'
]

# Detector registry, in dispatch order
DETECTOR_REGISTRY = {
    'error_handling': ErrorHandlingDetector,
    'callback_error': CallbackErrorDetector,
    'special_value': SpecialValueDetector,
}


def default_detectors():
    """Factories for every built-in detector, in dispatch order."""
    return list(DETECTOR_REGISTRY.values())
