"""
Adapter layer for the Files API.

Contains the local blob store and the post-processing queues (local/SQS).
Provides mode-aware implementations that work across deployment environments.
"""
