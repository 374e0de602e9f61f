#!/usr/bin/env python3
"""Demo: a minimal executor that registers itself and serves processes.

Prerequisites
─────────────
1. A ColonyOS server reachable at COLONIES_SERVER_URL
   (or COLONIES_SERVER_HOST / COLONIES_SERVER_PORT / COLONIES_SERVER_TLS)
2. Environment variables set:
     COLONIES_COLONY_NAME    – colony to serve
     COLONIES_COLONY_PRVKEY  – colony owner key (registers and approves)

Optional env:
     COLONIES_PRVKEY         – executor key; a fresh one is generated if unset
     COLONIES_EXECUTOR_NAME  – defaults to python-executor

Usage:
    python scripts/simple_executor.py
"""

from __future__ import annotations

import logging
import os
import time

from colonies import ColoniesClient, ColoniesConfig, Identity, RPCError
from colonies.types import new_executor

logger = logging.getLogger("simple_executor")

EXECUTOR_TYPE = "cli"
RETRY_DELAY = 5


def handle(client: ColoniesClient, process: dict, prvkey: str) -> None:
    spec = process["spec"]
    funcname = spec.get("funcname")
    args = spec.get("args") or []
    processid = process["processid"]

    client.add_log(processid, f"Processing function: {funcname}", prvkey)
    if funcname == "echo":
        client.close(processid, prvkey, output=[args[0] if args else "no input"])
    elif funcname == "add" and len(args) >= 2:
        client.close(processid, prvkey, output=[str(int(args[0]) + int(args[1]))])
    else:
        client.fail(processid, prvkey, errors=[f"Unsupported function: {funcname}"])


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    colonyname = os.environ["COLONIES_COLONY_NAME"]
    colony_prvkey = os.environ["COLONIES_COLONY_PRVKEY"]
    executorname = os.environ.get("COLONIES_EXECUTOR_NAME", "python-executor")
    prvkey = os.environ.get("COLONIES_PRVKEY")
    identity = Identity.from_hex(prvkey) if prvkey else Identity.generate()

    client = ColoniesClient(ColoniesConfig.from_env())
    logger.info("Executor %s id=%s server=%s", executorname, identity.id, client.config.server_url)

    executor = new_executor(executorname, identity.id, EXECUTOR_TYPE, colonyname)
    try:
        client.add_executor(executor, colony_prvkey)
        client.approve_executor(colonyname, executorname, colony_prvkey)
    except RPCError as e:
        logger.warning("Registration: %s", e)

    while True:
        try:
            process = client.assign(colonyname, 10, identity.prvkey)
        except RPCError as e:
            if e.conn_err():
                logger.error("Connection error: %s; retrying in %ds", e, RETRY_DELAY)
                time.sleep(RETRY_DELAY)
            # Otherwise nothing was assigned in time; poll again.
            continue
        logger.info("Assigned %s (%s)", process["processid"], process["spec"].get("funcname"))
        try:
            handle(client, process, identity.prvkey)
        except (RPCError, ValueError) as e:
            logger.error("Handling %s failed: %s", process["processid"], e)


if __name__ == "__main__":
    main()
