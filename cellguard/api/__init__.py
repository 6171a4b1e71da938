"""
CellGuard HTTP API

FastAPI service exposing the anomaly engine.
"""
