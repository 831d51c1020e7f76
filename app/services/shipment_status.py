# app/services/shipment_status.py

from enum import Enum
from typing import Tuple


class ShipmentStatus(str, Enum):
    """Clearance phases a shipment moves through, in order."""

    DOCUMENT_RECEIVED = "DOCUMENT RECEIVED"
    DOCUMENT_PROCESSING = "DOCUMENT PROCESSING"
    APPROVALS_PENDING = "APPROVALS PENDING"
    APPROVALS_PAYMENT_DONE = "APPROVALS PAYMENT DONE"
    CDF_PREPARED = "CDF PREPARED"
    UNDER_CLEARANCE_DOCUMENTATION = "UNDER CLEARANCE DOCUMENTATION"
    CDF_PAYMENT_PENDING = "CDF PAYMENT PENDING"
    DUTY_VAT_PAYMENT_DONE = "DUTY & VAT PAYMENT DONE"
    UNDER_CLEARANCE = "UNDER CLEARANCE"
    CLEARANCE_COMPLETED = "CLEARANCE COMPLETED"
    DELIVERED_AT_PLACE = "DELIVERED AT PLACE"


DEFAULT_STATUS = ShipmentStatus.DOCUMENT_RECEIVED

ORDERED_STATUSES = list(ShipmentStatus)


def status_progress(status) -> Tuple[int, int]:
    """
    1-based position of a status in the clearance sequence.

    Unknown values (rows written before statuses were enforced) report
    step 0.
    """
    try:
        step = ORDERED_STATUSES.index(ShipmentStatus(status)) + 1
    except ValueError:
        step = 0
    return step, len(ORDERED_STATUSES)
