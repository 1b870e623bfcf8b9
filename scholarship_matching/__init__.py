"""
Scholarship matching core: eligibility rules and approval-probability models.
"""
