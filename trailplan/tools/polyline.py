from typing import List, Tuple


def decode_polyline(encoded: str, precision: int = 5) -> List[Tuple[float, float]]:
    """Decode an encoded polyline into a list of (lat, lon) points.

    OpenRouteService uses the Google polyline algorithm with 5 digits of
    precision for its ``geometry`` strings.
    """
    factor = 10 ** precision
    points: List[Tuple[float, float]] = []
    index = 0
    lat = 0
    lon = 0

    while index < len(encoded):
        deltas = []
        for _ in range(2):
            shift = 0
            value = 0
            while True:
                if index >= len(encoded):
                    raise ValueError("truncated polyline")
                b = ord(encoded[index]) - 63
                index += 1
                value |= (b & 0x1F) << shift
                shift += 5
                if b < 0x20:
                    break
            deltas.append(~(value >> 1) if (value & 1) else (value >> 1))
        lat += deltas[0]
        lon += deltas[1]
        points.append((lat / factor, lon / factor))

    return points
