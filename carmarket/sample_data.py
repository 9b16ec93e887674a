"""Starter inventory for demo installs (`run_reconcile.py --seed`)."""
from datetime import datetime, timedelta, timezone

from .schemas import AccountRecord, ListingRecord

_BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)

_DEALERS = [
    ("u1", "Dubai Luxury Motors", "Dubai"),
    ("u2", "Premium Auto UAE", "Abu Dhabi"),
    ("u3", "Elite Cars", "Sharjah"),
    ("u4", "Emirates Auto", "Dubai"),
]

_CARS = [
    # id, title, make, model, year, price, mileage, location, seller
    ("1", "2019 Mercedes-Benz S-Class S 450", "Mercedes-Benz", "S-Class", 2019, 259000, 45000, "Dubai", "u1"),
    ("2", "2021 BMW X5 xDrive40i", "BMW", "X5", 2021, 310000, 32000, "Abu Dhabi", "u2"),
    ("3", "2020 Audi A6 45 TFSI", "Audi", "A6", 2020, 175000, 58000, "Sharjah", "u3"),
    ("4", "2022 Range Rover Sport HSE", "Land Rover", "Range Rover Sport", 2022, 425000, 18000, "Dubai", "u4"),
    ("5", "2018 Lexus ES 350", "Lexus", "ES", 2018, 120000, 67000, "Dubai", "u1"),
    ("6", "2020 Porsche Cayenne", "Porsche", "Cayenne", 2020, 340000, 29000, "Abu Dhabi", "u2"),
]


def sample_accounts():
    return [
        AccountRecord(
            id=uid,
            name=name,
            email=f"{uid}@dealers.example.com",
            location=location,
            created_at=_BASE,
            updated_at=_BASE,
        )
        for uid, name, location in _DEALERS
    ]


def sample_listings():
    return [
        ListingRecord(
            id=cid, title=title, make=make, model=model, year=year, price=price,
            mileage=mileage, location=location, owner_id=seller,
            description=f"{title}, {mileage:,} km, dealer maintained.",
            created_at=_BASE + timedelta(days=i),
        )
        for i, (cid, title, make, model, year, price, mileage, location, seller) in enumerate(_CARS)
    ]
