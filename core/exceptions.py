#!/usr/bin/env python3
"""
Custom exceptions for the grading and matching services.
"""


class MatchingServiceException(Exception):
    """Base exception for service layer errors."""
    pass


class InvalidAssessmentException(MatchingServiceException):
    """Raised when a health assessment is incomplete or out of range."""
    pass


class InvalidPreferenceException(MatchingServiceException):
    """Raised when a matching preference is malformed."""
    pass


class AssessmentNotFoundException(MatchingServiceException):
    """Raised when a health assessment is not found."""
    pass


class StoreUnavailableException(MatchingServiceException):
    """Raised when the coordinator store cannot be reached."""
    pass


class MatchingCancelledException(MatchingServiceException):
    """Raised when a matching run is abandoned by its caller."""
    pass


class MatchingTimeoutException(MatchingServiceException):
    """Raised when a matching run passes its deadline."""
    pass


class CoordinatorNotFoundException(MatchingServiceException):
    """Raised when a coordinator's care settings do not exist."""
    pass


class MatchingDisabledException(MatchingServiceException):
    """Raised when matching is switched off in configuration."""
    pass
