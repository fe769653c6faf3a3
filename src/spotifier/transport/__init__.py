"""
Transport Module - Outbound HTTP for the SPOT client.
=====================================================

- dispatcher: paced, identity-rotating requests sharing one cookie jar
"""

from spotifier.transport.dispatcher import DispatchStats, RequestDispatcher

__all__ = [
    "DispatchStats",
    "RequestDispatcher",
]
