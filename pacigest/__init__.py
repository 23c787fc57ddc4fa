"""
PaciGest Plus API: medical practice management backend.
"""
__version__ = "1.0.0"
