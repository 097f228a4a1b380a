# MIT License
# Copyright (c) 2025 Hashborn

import argparse
import os
import sys
from datetime import datetime

import requests

DEFAULT_NODE = "http://localhost:3300"

def get_node_url(args):
    return args.node or os.environ.get("STAKEROUND_NODE", DEFAULT_NODE)

def _get(args, path: str) -> dict:
    url = get_node_url(args)
    try:
        resp = requests.get(f"{url}{path}", timeout=10)
    except requests.RequestException as e:
        print(f"Connection error: {e}")
        sys.exit(1)
    if resp.status_code != 200:
        print(f"Error: {resp.text}")
        sys.exit(1)
    return resp.json()

def cmd_status(args):
    data = _get(args, "/status")
    print(f"Network prefix:     {data['network_prefix']}")
    print(f"Last nominated era: {data['last_nominated_era']}")
    print(f"Round phase:        {data['round_phase']}")

def cmd_jobs(args):
    jobs = _get(args, "/jobs")["jobs"]
    if not jobs:
        print("No job progress reported yet.")
        return

    print(f"{'Job':<30} {'Progress':>8}  {'Updated':<19}  Iteration")
    print("-" * 80)
    for job in jobs:
        updated = datetime.fromtimestamp(job["updated"] / 1000).strftime("%Y-%m-%d %H:%M:%S")
        print(f"{job['name']:<30} {job['progress']:>7}%  {updated:<19}  {job['iteration']}")

def cmd_nominations(args):
    nominations = _get(args, f"/nominations?limit={args.limit}")["nominations"]
    if not nominations:
        print("No nominations recorded.")
        return

    for n in nominations:
        tx = n["tx_hash"] or "dry-run"
        print(f"Era {n['era']:<6} {n['bonded_address']}  {len(n['targets'])} target(s)  {tx}")

def cmd_validator(args):
    data = _get(args, f"/validators/{args.address}")
    print(f"Validator: {data['address']} (era {data['era']})")
    for field in ("commission", "blocked", "bonded", "reward_destination", "next_keys", "exposure"):
        result = data[field]
        if result["status"] == "OK":
            print(f"  {field:<20} {result['value']}")
        else:
            print(f"  {field:<20} {result['status'].lower()}: {result['reason']}")

def main():
    parser = argparse.ArgumentParser(description="StakeRound CLI")
    parser.add_argument("--node", help="Status API URL (default: $STAKEROUND_NODE or localhost:3300)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("status", help="Show round status")
    subparsers.add_parser("jobs", help="Show job progress")

    p_noms = subparsers.add_parser("nominations", help="Show recent nominations")
    p_noms.add_argument("--limit", type=int, default=20)

    p_val = subparsers.add_parser("validator", help="Show staking facts of a validator")
    p_val.add_argument("address", help="Validator stash address")

    args = parser.parse_args()

    if args.command == "status":
        cmd_status(args)
    elif args.command == "jobs":
        cmd_jobs(args)
    elif args.command == "nominations":
        cmd_nominations(args)
    elif args.command == "validator":
        cmd_validator(args)

if __name__ == "__main__":
    main()
