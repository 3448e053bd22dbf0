"""
Medibill
========

Hospital billing and insurance claim adjudication.

This package provides the coverage rules used to decide what an insurer pays
for a bill, and the state machines that govern insurance claims and bills
from draft through payment, refund and dispute.
"""

__version__ = "0.1.0"
__author__ = "Medibill"
