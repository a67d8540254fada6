import datetime as dt

from avawatcher.models import UnitSnapshot

T0 = dt.datetime(2022, 10, 20, 12, 0, tzinfo=dt.timezone.utc)


def make_payload(
    unit_id: str = "AVB-WA026-001-731",
    number: str = "731",
    bedroom: int = 2,
    bathroom: int = 2,
    price: float = 4260.0,
    **overrides,
) -> dict:
    payload = {
        "unitId": unit_id,
        "name": number,
        "furnishStatus": "Unfurnished",
        "floorPlan": {
            "name": "f-b4v",
            "lowResolution": "/floorplans/wa026/wa026-b4v-1268sf(1).jpg/128/96",
            "highResolution": "/floorplans/wa026/wa026-b4v-1268sf(1).jpg/1024/768",
        },
        "virtualTour": None,
        "bedroom": bedroom,
        "bathroom": bathroom,
        "squareFeet": 1268,
        "availableDate": "10/21/2022 4:00:00 AM +00:00",
        "unitRentPrice": {
            "appliedDiscount": 0,
            "pricesPerMoveinDate": [
                {
                    "moveInDate": "10/21/2022 4:00:00 AM +00:00",
                    "pricesPerTerms": {
                        "2": {"price": 4720, "netEffectivePrice": 4720},
                    },
                }
            ],
        },
        "lowestPricePerMoveInDate": {
            "date": "10/21/2022 4:00:00 AM +00:00",
            "termLength": "8",
            "price": price,
            "netEffectivePrice": price,
        },
        "promotions": [
            {
                "promotionId": "106246",
                "startDate": "10/5/2022 4:00:00 AM +00:00",
                "endDate": "11/30/2022 4:00:00 AM +00:00",
                "terms": [12],
            }
        ],
    }
    payload.update(overrides)
    return payload


def make_unit(unit_id: str = "AVB-WA026-001-731", **kwargs) -> UnitSnapshot:
    return UnitSnapshot.from_api(make_payload(unit_id=unit_id, **kwargs))
