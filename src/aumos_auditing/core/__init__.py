"""Core auditing logic: change sets, masking, transitions and orchestration."""
