"""
Cell and field-name helpers shared by readers, normalizer and quality report.
"""
