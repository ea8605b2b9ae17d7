import argparse
import json
import os
from typing import Optional

import requests

API_BASE = os.getenv("API_BASE", "http://127.0.0.1:8080")
STATUSES = ("available", "charging", "maintenance", "error", "unknown")


def _do_json(method: str, url: str, body: Optional[str] = None, params: Optional[dict] = None) -> requests.Response:
    headers = {
        "Content-Type": "application/json",
        "Connection": "close",
    }
    resp = requests.request(method, url, data=body, params=params, headers=headers, timeout=60)
    print(f"{method} {resp.url} -> {resp.status_code} {resp.reason}")
    print(resp.text)
    return resp


def get_status(charger_id: str, bypass: bool = False, lang: Optional[str] = None) -> requests.Response:
    params = {"chargerId": charger_id}
    if bypass:
        params["bypassCache"] = "true"
    if lang:
        params["lang"] = lang
    return _do_json("GET", f"{API_BASE}/charger-status", params=params)


def set_status(charger_id: str, status: str) -> requests.Response:
    body = json.dumps({"chargerId": charger_id, "status": status})
    return _do_json("POST", f"{API_BASE}/charger-status", body)


def list_chargers(bypass: bool = False, lang: Optional[str] = None) -> requests.Response:
    params = {}
    if bypass:
        params["bypassCache"] = "true"
    if lang:
        params["lang"] = lang
    return _do_json("GET", f"{API_BASE}/chargers", params=params)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Query or set charger status via the HTTP API")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_get = sub.add_parser("get", help="show one charger")
    p_get.add_argument("chargerId")
    p_get.add_argument("--bypass", action="store_true", help="skip the server-side cache")
    p_get.add_argument("--lang", choices=("de", "en"))

    p_set = sub.add_parser("set", help="set a manual status")
    p_set.add_argument("chargerId")
    p_set.add_argument("status", choices=STATUSES)

    p_list = sub.add_parser("list", help="show all monitored chargers")
    p_list.add_argument("--bypass", action="store_true", help="skip the server-side cache")
    p_list.add_argument("--lang", choices=("de", "en"))

    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    if args.cmd == "get":
        get_status(args.chargerId, args.bypass, args.lang)
    elif args.cmd == "set":
        set_status(args.chargerId, args.status)
    elif args.cmd == "list":
        list_chargers(args.bypass, args.lang)


if __name__ == "__main__":
    main()
