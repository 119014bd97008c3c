"""
Health Risk Explainability & Simulation Engine
"""
__version__ = "0.1.0"
