from enum import Enum


class VehicleClass(str, Enum):
    COURIER = "courier"
    MINIVAN = "minivan"
    PANELVAN = "panelvan"
    KAMYONET = "kamyonet"
    KAMYON = "kamyon"

    def __str__(self):
        return self.value


class CarrierType(str, Enum):
    COURIER = "courier"
    MINIVAN = "minivan"
    PANELVAN = "panelvan"
    TRUCK = "truck"

    def __str__(self):
        return self.value


class VehicleTemplate(str, Enum):
    MOTORCYCLE = "motorcycle"
    MINIVAN = "minivan"
    PANELVAN = "panelvan"
    KAMYONET = "kamyonet"
    KAMYON = "kamyon"

    def __str__(self):
        return self.value


class RegionMatchLevel(str, Enum):
    CITY = "city"
    STATE = "state"
    NONE = "none"

    def __str__(self):
        return self.value


class DistanceStatus(str, Enum):
    INCOMPLETE = "incomplete"
    PENDING = "pending"
    OK = "ok"
    UNAVAILABLE = "unavailable"

    def __str__(self):
        return self.value


class ResourceState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"

    def __str__(self):
        return self.value


class PricingCause(str, Enum):
    DISTANCE = "distance"
    RATE = "rate"
    BOTH = "both"
    EXTRAS = "extras"

    def __str__(self):
        return self.value


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    TRANSFER = "transfer"

    def __str__(self):
        return self.value


class DeliveryType(str, Enum):
    IMMEDIATE = "immediate"
    SCHEDULED = "scheduled"

    def __str__(self):
        return self.value
