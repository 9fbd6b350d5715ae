"""
Shared helpers: JSON logging, config loading, error kinds, Result/MainQueue, bbox geometry.
"""
