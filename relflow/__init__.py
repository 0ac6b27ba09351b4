"""relflow: build-once, deploy-many release orchestration."""

__version__ = "0.3.0"
