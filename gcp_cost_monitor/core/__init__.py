"""
Core modules for GCP Cost Monitor.

This package contains the cost estimator, tiered egress pricing, the alert
cooldown ledger and the alert decision pipeline.
"""
