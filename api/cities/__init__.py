"""
City resource: store, query layer and HTTP endpoints.
"""
