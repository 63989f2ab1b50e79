"""
Flask blueprints.
"""
