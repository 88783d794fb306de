"""
Shared plumbing for the Examhub authorization service.
"""
