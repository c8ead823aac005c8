"""LINE webhook receiver.

Authenticates LINE Messaging API callbacks and reports the follow, unfollow
and message events they carry.
"""

__version__ = "0.1.0"
