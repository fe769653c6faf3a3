"""
Spotifier - Client for the UPI SPOT student portal
==================================================

Authenticates through the university CAS single sign-on (sso.upi.edu) and
reads the student side of SPOT (spot.upi.edu):

- Profile and enrolled courses of the active academic period
- Course details, topics, learning contents and tasks
- Task submissions: submit, inspect, delete
- Academic period switching

Requests are paced with randomized delays, and session cookies can be
persisted so that later runs skip the login.
"""

__version__ = "0.1.0"
__author__ = "Spotifier Team"
__license__ = "MIT"

from spotifier.client import SpotifierClient

__all__ = [
    # Version info
    "__version__",
    "__author__",
    "__license__",
    # Public client
    "SpotifierClient",
    # Subpackages (imported on demand)
    "shared",
    "cache",
    "transport",
    "auth",
    "extraction",
    "cli",
]
