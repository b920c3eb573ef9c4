# debug_orchestrator.py
import asyncio
import json
import sys

from trailplan.agents.destination_gate import check_destination
from trailplan.orchestrator import plan_trip
from trailplan.schemas import TripRequest


async def main():
    payload = {
        "country": "France",
        "city": "Paris",
        "tripType": sys.argv[1] if len(sys.argv) > 1 else "trek",
        "tripDate": "2025-06-01",
    }
    trip_req = TripRequest.model_validate(payload)

    destination = await check_destination(trip_req.country, trip_req.city)
    print(f"➡️ Destination check: {destination}")
    if not destination.valid:
        return

    result = await plan_trip(trip_req)
    print("➡️ Orchestrator returned:\n")
    print(json.dumps(result.to_payload(), indent=2))


if __name__ == "__main__":
    asyncio.run(main())
