"""
Remote interview service access.
"""

from live_interview.api.gateway import InterviewGateway, NetworkError

__all__ = [
    "InterviewGateway",
    "NetworkError",
]
