"""
Domain layer for traced actions.

This layer contains:
- Data models (requests, results, outcomes)
- Traced action executor (span lifecycle, outcome classification)
- Email sending action
"""
