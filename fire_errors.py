"""
fire_errors.py - Error taxonomy for the fire effect

Only construction-time problems raise. Failures while enqueueing or waiting
on device work are reported as StepStatus values and logged; the caller
simply moves on to the next step.
"""

import enum


class FireError(Exception):
    """Base class for fire effect errors."""


class AllocationError(FireError):
    """A host or device buffer could not be allocated. Fatal."""


class AcceleratorError(FireError):
    """No usable accelerator, or the accelerator failed its self test."""


class StepStatus(enum.Enum):
    OK = "ok"
    # A stage could not be enqueued; the step was abandoned
    SUBMISSION_FAILURE = "submission_failure"
    # The completion signal could not be resolved; snapshot may be stale
    WAIT_FAILURE = "wait_failure"

    @property
    def ok(self):
        return self is StepStatus.OK
