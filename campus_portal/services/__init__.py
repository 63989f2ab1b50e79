"""
Service layer for resource resolution and previewing.
"""
