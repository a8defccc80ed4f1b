"""
Jobs Module

The translation job scheduler:
- models: job records, queue descriptors and the status state machine
- store: durable job state and job logs
- rate_limiter, retry: provider call throttling and retry decisions
- pipeline: one job run, step by step
- scheduler, runner: the worker pool and its background thread host
- service: operations used by the HTTP API
"""
