"""Loan eligibility rule"""

LOAN_ELIGIBILITY_THRESHOLD = 650


def is_loan_eligible(score: int, threshold: int = LOAN_ELIGIBILITY_THRESHOLD) -> bool:
    """A business qualifies for a loan once its score reaches the threshold"""
    return score >= threshold
