"""Business services (version control, pipelines, approvals, promotion)."""
