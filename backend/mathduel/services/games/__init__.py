"""Game domain services: reconciliation, document store and triggers.

The reconciler is pure and has no Flask or database imports; the store and
the trigger adapter are the only pieces that touch the session and Socket.IO.
"""
