"""
Estate Kernel

The approval/state-machine core for leasable government real-estate assets:
- Asset review lifecycle
- ISNAD multi-stage governmental sign-off with SLA deadlines
- Contract activation and installment billing
- Append-only audit trail of every stage change
"""

__version__ = "0.1.0"
