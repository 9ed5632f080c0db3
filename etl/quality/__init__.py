"""
Data quality checks for the bronze and silver layers.

``checks`` defines the rules as read-only predicates, ``runner`` evaluates them
against a layer and reports the results.
"""
