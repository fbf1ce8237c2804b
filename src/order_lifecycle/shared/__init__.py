"""
Shared utilities and models for the order lifecycle engine.
"""
