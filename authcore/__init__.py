"""
Authcore
Authentication service: registration, login, refresh-token rotation and sessions
"""

__version__ = "1.0.0"
