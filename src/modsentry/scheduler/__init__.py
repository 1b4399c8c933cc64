"""
Deferred task execution, used to remove moderation notices after a delay.
"""
