"""Deterministic sample shops served when live search is unavailable."""

from autoquote.models.shops import RepairShop

DEFAULT_LATITUDE = 37.3382
DEFAULT_LONGITUDE = -121.8863

_SAMPLE_SHOPS = [
    {
        "shop_name": "Elite Auto Body & Repair",
        "address": "1234 Main Street",
        "zip_code": "95112",
        "phone_number": "(408) 555-1234",
        "website": "https://eliteautobody.com",
        "rating": 4.8,
        "review_count": 256,
        "reviews": ["Excellent service!", "Fixed my car perfectly."],
        "services": ["Collision Repair", "Dent Removal", "Paint Work", "Frame Straightening"],
        "hours_of_operation": "Mon-Fri 8am-6pm, Sat 9am-4pm",
        "offset": (0.01, 0.01),
        "distance_miles": 0.8,
    },
    {
        "shop_name": "Pacific Coast Auto Care",
        "address": "567 Oak Avenue",
        "zip_code": "95113",
        "phone_number": "(408) 555-5678",
        "website": "https://pacificcoastauto.com",
        "rating": 4.6,
        "review_count": 189,
        "reviews": ["Great prices and quick turnaround.", "Very professional team."],
        "services": ["Body Repair", "Bumper Repair", "Scratch Removal", "Insurance Claims"],
        "hours_of_operation": "Mon-Fri 7:30am-5:30pm",
        "offset": (-0.015, 0.02),
        "distance_miles": 1.2,
    },
    {
        "shop_name": "Bay Area Collision Center",
        "address": "890 Tech Drive",
        "zip_code": "95110",
        "phone_number": "(408) 555-8901",
        "website": "https://bayareacollision.com",
        "rating": 4.9,
        "review_count": 412,
        "reviews": ["Best collision repair in the area!", "They made my car look brand new."],
        "services": ["Complete Collision Repair", "Paintless Dent Repair", "Auto Glass", "Detailing"],
        "hours_of_operation": "Mon-Sat 8am-6pm",
        "offset": (0.02, -0.015),
        "distance_miles": 1.8,
    },
    {
        "shop_name": "QuickFix Auto Body",
        "address": "321 Industrial Blvd",
        "zip_code": "95111",
        "phone_number": "(408) 555-3210",
        "rating": 4.4,
        "review_count": 98,
        "reviews": ["Fast and affordable!", "Good quality work."],
        "services": ["Minor Repairs", "Dent Removal", "Touch-up Paint", "Bumper Replacement"],
        "hours_of_operation": "Mon-Fri 9am-5pm",
        "offset": (-0.008, -0.025),
        "distance_miles": 2.1,
    },
    {
        "shop_name": "Premium Auto Restoration",
        "address": "456 Luxury Lane",
        "zip_code": "95125",
        "phone_number": "(408) 555-4567",
        "website": "https://premiumautorestore.com",
        "rating": 4.7,
        "review_count": 167,
        "reviews": ["Premium quality service.", "Expensive but worth it."],
        "services": ["Full Restoration", "Custom Paint", "Classic Car Repair", "Luxury Vehicle Specialist"],
        "hours_of_operation": "Mon-Fri 8am-5pm",
        "offset": (0.025, 0.018),
        "distance_miles": 2.5,
    },
]


def fallback_shops(latitude: float | None = None, longitude: float | None = None) -> list[RepairShop]:
    """Return the sample dataset placed around the given coordinates."""
    lat = DEFAULT_LATITUDE if latitude is None else latitude
    lon = DEFAULT_LONGITUDE if longitude is None else longitude
    shops = []
    for sample in _SAMPLE_SHOPS:
        data = {k: v for k, v in sample.items() if k != "offset"}
        d_lat, d_lon = sample["offset"]
        shops.append(
            RepairShop(
                city="San Jose",
                state="CA",
                latitude=round(lat + d_lat, 6),
                longitude=round(lon + d_lon, 6),
                **data,
            )
        )
    return shops
