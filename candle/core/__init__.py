"""
Core client logic: configuration, error taxonomy, scheduling and the
auction protocol state machine.
"""
