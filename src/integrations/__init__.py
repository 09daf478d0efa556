"""
Protocol-facing integrations.

This package contains the tool capability table and its FastMCP
registration.
"""
