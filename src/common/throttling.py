from ninja_extra.throttling import AnonRateThrottle


class AnonDefaultThrottle(AnonRateThrottle):
    rate = "60/min"


class PriceQuoteThrottle(AnonRateThrottle):
    rate = "120/min"


class WriteThrottle(AnonRateThrottle):
    rate = "100/min"


class RegistrationWriteThrottle(AnonRateThrottle):
    rate = "30/min"
