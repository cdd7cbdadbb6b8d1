"""Peer lending tracker for a private circle of friends.

Members catalog the books they own, ask to borrow books from each other,
and owners approve, hand over and take back their books.
"""

__version__ = "0.1.0"
