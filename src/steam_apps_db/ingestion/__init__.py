"""
Upstream ingestion: the Steam API gateway and the payload contracts.
"""
