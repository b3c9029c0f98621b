"""
PlexRequests test suite
"""
