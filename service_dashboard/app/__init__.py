"""
Dashboard data layer application package.
"""
