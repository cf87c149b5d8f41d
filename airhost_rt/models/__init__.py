"""
Data models for pricing recommendations, dashboard snapshots and the
realtime wire protocol.
"""
