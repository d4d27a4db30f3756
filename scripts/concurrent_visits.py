# concurrent_visits.py
import asyncio

import httpx

from visitbox.shared import load_config

config = load_config()


async def hammer(base_url: str, requests: int) -> list[int]:
    """Fire ``requests`` GET /visits at once and return the reported counts."""
    async with httpx.AsyncClient(base_url=base_url) as client:
        responses = await asyncio.gather(
            *(client.get("/visits") for _ in range(requests))
        )

    counts = []
    for response in responses:
        response.raise_for_status()
        counts.append(int(response.text.rsplit(" ", 1)[-1]))
    return counts


if __name__ == "__main__":
    import argparse

    def parse_args():
        parser = argparse.ArgumentParser(
            description="Send concurrent visits and look for lost updates"
        )
        parser.add_argument(
            "--url",
            type=str,
            default=f"http://localhost:{config.network.port}",
            help="Base URL of a running server",
        )
        parser.add_argument("-n", type=int, default=50, help="Number of visits")
        return parser.parse_args()

    args = parse_args()
    counts = asyncio.run(hammer(args.url, args.n))

    duplicates = len(counts) - len(set(counts))
    print(f"[✔] {len(counts)} visits, reported {min(counts)}..{max(counts)}")
    if duplicates:
        print(f"[!] {duplicates} visit(s) reported a count already seen: lost updates")
    else:
        print("[✔] No duplicate counts")
