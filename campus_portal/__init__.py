"""
Campus portal learning-resource viewer.
"""
