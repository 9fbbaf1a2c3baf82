"""
portfolio_runtime.data

Static content package.
"""

# Package marker.
