"""
RBAC (Role-Based Access Control) application.

Provides capability-based authorization with:
- A seeded capability catalog
- Role default capability sets
- Per-user grant/deny overrides with deny-overrides-allow precedence
- An in-process decision cache invalidated by every administrative change
"""
