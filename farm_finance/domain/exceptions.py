"""Domain-specific exceptions"""

from typing import Optional


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class FarmNotFoundError(DomainException):
    """Referenced farm is unknown to the host"""

    def __init__(self, farm_id: int):
        super().__init__(f"Farm {farm_id} not found")
        self.farm_id = farm_id


class DealNotFoundError(DomainException):
    """Referenced finance deal does not exist"""

    def __init__(self, deal_id: str):
        super().__init__(f"Deal {deal_id} not found")
        self.deal_id = deal_id


class ListingNotFoundError(DomainException):
    """Referenced sale listing does not exist"""

    def __init__(self, listing_id: str):
        super().__init__(f"Listing {listing_id} not found")
        self.listing_id = listing_id


class VehicleNotFoundError(DomainException):
    """Vehicle is not owned by the farm"""

    pass


class InvalidRequestError(DomainException):
    """Request parameters are outside the allowed ranges"""

    pass


class InvalidListingStateError(DomainException):
    """Operation is not allowed in the listing's current status"""

    pass


class InsufficientFundsError(DomainException):
    """Farm cannot cover an upfront amount"""

    def __init__(self, required: float, available: float):
        self.required = required
        self.available = available
        self.shortfall = max(0.0, required - available)
        super().__init__(f"Insufficient funds: need {required:.2f}, have {available:.2f}")


class IneligibleError(DomainException):
    """Credit score or minimum amount gate failed"""

    def __init__(self, message: str, required: Optional[float] = None, current: Optional[float] = None):
        super().__init__(message)
        self.required = required
        self.current = current


class CorruptSaveError(DomainException):
    """Saved state could not be decoded"""

    def __init__(self, slot: str, reason: str):
        self.slot = slot
        super().__init__(f"Save slot {slot} is corrupt: {reason}")
