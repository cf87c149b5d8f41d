"""
AirHost RT - Real-time dashboard broadcast and dynamic pricing engine

Tracks live dashboard connections and their topic subscriptions, pushes
periodic metrics snapshots to subscribed owners, and produces per-day
price recommendations from a weighted multi-factor model.
"""

__version__ = "0.1.0"
__author__ = "AirHost Team"
