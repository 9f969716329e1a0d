"""Application services: building, admitting and orchestrating withdrawals."""

from zknon_relay.services.admission_gate import (
    AdmissionGate,
    FixedWindowGate,
    RedisFixedWindowGate,
)
from zknon_relay.services.transfer_builder import TransferBuilder
from zknon_relay.services.withdrawal_runner import WithdrawalRunner
from zknon_relay.services.withdrawal_service import WithdrawalService

__all__ = [
    "AdmissionGate",
    "FixedWindowGate",
    "RedisFixedWindowGate",
    "TransferBuilder",
    "WithdrawalRunner",
    "WithdrawalService",
]
