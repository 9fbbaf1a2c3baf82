"""
portfolio_runtime.routing

Client-side style routing.
"""

# Package marker.
