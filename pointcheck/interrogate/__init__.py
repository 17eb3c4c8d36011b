"""Run validation plans and classify their outcomes."""
