"""
Escrow Lending System

Disbursement of pooled funds to approved borrowers with principal held in
escrow until repayment, time and impact-verification conditions are met.
"""

__version__ = "1.0.0"
