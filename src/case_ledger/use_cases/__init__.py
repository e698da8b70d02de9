"""Use-case level logic.

These modules interpret normalized case records and reconcile monthly metrics
into a financial statement. They should be:
- deterministic
- unit-testable
- free of web/framework code
"""
