"""
Browser module for CDP Pilot.
Contains classes for attaching to browser instances and driving pages.
"""
from .browser import Browser
from .dialog import Dialog
from .element import ElementHandle
from .evaluation import UNDEFINED
from .exceptions import (
    BrowserError,
    CloseFailure,
    DeadlineExceeded,
    NavigationError,
    PageError,
    RemoteEvaluationError,
)
from .page import Page

__all__ = [
    'Browser',
    'Page',
    'ElementHandle',
    'Dialog',
    'UNDEFINED',
    'BrowserError',
    'PageError',
    'NavigationError',
    'RemoteEvaluationError',
    'CloseFailure',
    'DeadlineExceeded',
]
