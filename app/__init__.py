"""
Bot Tracker - heartbeat registry and broadcast service for bot instances
"""
