"""
Core utilities — domain exceptions shared by ingestion, storage, analytics and the API.
"""
