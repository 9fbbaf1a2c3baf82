"""
portfolio_runtime.controllers

Controllers wired in the fifth bootstrap phase.

Responsibilities:
- Navigation bar synchronization.
- Section rendering and activation.
"""

# Package marker.
