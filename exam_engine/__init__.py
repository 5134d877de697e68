"""
Test attempt engine: grading, attempt lifecycle and statistics
"""
