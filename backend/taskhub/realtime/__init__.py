"""
Real-time module for Socket.IO based notification delivery.
"""
from taskhub.realtime.socket import sio

__all__ = ["sio"]
