"""Launch rate cards, loaded by ``devseed`` and the test fixtures."""

from .models import RateConfig

SUN_WED = ["sunday", "monday", "tuesday", "wednesday"]
THU_SAT = ["thursday", "friday", "saturday"]


def _tier(min_guests, max_guests, sun_wed, thu_sat):
    return {
        "key": f"{min_guests}-{max_guests}",
        "label": f"{min_guests}-{max_guests} guests",
        "min_guests": min_guests,
        "max_guests": max_guests,
        "rates": {"sun_wed": sun_wed, "thu_sat": thu_sat},
    }


WINE_TOURS = {
    "max_party_size": 14,
    "max_duration_hours": 12,
    "default_minimum_hours": 4,
    "day_types": [
        {"key": "sun_wed", "label": "Sun-Wed", "weekdays": SUN_WED, "minimum_hours": 4},
        {"key": "thu_sat", "label": "Thu-Sat", "weekdays": THU_SAT, "minimum_hours": 5},
    ],
    "tiers": [
        _tier(1, 2, "85.00", "95.00"),
        _tier(3, 4, "95.00", "105.00"),
        _tier(5, 6, "105.00", "115.00"),
        _tier(7, 8, "115.00", "125.00"),
        _tier(9, 11, "130.00", "140.00"),
        _tier(12, 14, "140.00", "150.00"),
    ],
}

WAIT_TIME = {
    "max_party_size": 14,
    "max_duration_hours": 12,
    "default_minimum_hours": 1,
    "day_types": [
        {"key": "sun_wed", "label": "Sun-Wed", "weekdays": SUN_WED},
        {"key": "thu_sat", "label": "Thu-Sat", "weekdays": THU_SAT},
    ],
    "tiers": [
        _tier(1, 4, "75.00", "85.00"),
        _tier(5, 8, "95.00", "105.00"),
        _tier(9, 14, "110.00", "120.00"),
    ],
}

TRANSFERS = {
    "max_party_size": 14,
    "routes": {
        "seatac_to_walla": {"label": "Seattle-Tacoma Airport to Walla Walla", "price": "850.00"},
        "walla_to_seatac": {"label": "Walla Walla to Seattle-Tacoma Airport", "price": "850.00"},
    },
    "local": {"base_rate": "100.00", "per_mile": "3.00", "base_miles": 10, "max_miles": 100},
}

DEPOSITS_AND_FEES = {
    "tax_rate": "0.091",
    "deposit_percentage": "0.50",
}

RATE_CONFIGS = {
    RateConfig.WINE_TOURS: ("Hourly private wine tour rates by party size and day type.", WINE_TOURS),
    RateConfig.WAIT_TIME: ("Hourly driver wait time rates.", WAIT_TIME),
    RateConfig.TRANSFERS: ("Flat airport routes and per-mile local transfers.", TRANSFERS),
    RateConfig.DEPOSITS_AND_FEES: ("Tax rate and deposit percentage.", DEPOSITS_AND_FEES),
}


def install_default_rate_configs():
    """Create any missing rate configuration rows; existing rows are left untouched."""
    created = []
    for key, (description, value) in RATE_CONFIGS.items():
        _, was_created = RateConfig.objects.get_or_create(
            config_key=key,
            defaults={"config_value": value, "description": description},
        )
        if was_created:
            created.append(key)
    return created
