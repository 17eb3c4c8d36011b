"""Validation plans: the agent, its steps and YAML plan files."""
