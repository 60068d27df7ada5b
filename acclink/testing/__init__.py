"""
acclink/testing: loopback peers for exercising channels.
"""

from .stub_manager import StubManager, grant_all, serve_once

__all__ = ['StubManager', 'grant_all', 'serve_once']
