"""
Administrative actions on a router through the automation service
"""

from .executor import ActionResult, RemoteActionExecutor, ACTIONS, REBOOT, SPEED_TEST, DEVICES

__all__ = ['ActionResult', 'RemoteActionExecutor', 'ACTIONS', 'REBOOT', 'SPEED_TEST', 'DEVICES']
