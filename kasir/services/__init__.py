"""
Domain services. Every function takes the request Session explicitly.
"""
