"""High-level ColonyOS client: one signed envelope per server operation.

Every method takes the private key of the principal making the call; the
server recovers that principal's identity from the request signature and
authorizes accordingly (server key for colonies, colony key for executor
approval, executor key for process work).
"""

import json
import logging
from typing import Any

from . import rpc
from .config import ColoniesConfig
from .envelope import compose
from .errors import EnvelopeError
from .pubsub import Consumer, SubscriptionResult, subscribe
from .types import (
    Attribute,
    Blueprint,
    BlueprintDefinition,
    ChannelEntry,
    Colony,
    Executor,
    Function,
    FunctionSpec,
    Log,
    Process,
    ProcessGraph,
    Statistics,
    WorkflowSpec,
)

logger = logging.getLogger(__name__)


class ColoniesClient:
    """Client for a single ColonyOS server.

    Holds no state besides its configuration, so one instance may be shared
    across threads.
    """

    def __init__(self, config: ColoniesConfig | None = None):
        self.config = config or ColoniesConfig()

    # -- colonies --

    def add_colony(self, colony: Colony, prvkey: str) -> Colony:
        """Register a colony. Needs the server key."""
        return self._rpc("addcolonymsg", {"colony": colony}, prvkey)

    def remove_colony(self, colonyname: str, prvkey: str) -> None:
        """Delete a colony together with its executors and processes."""
        self._rpc("removecolonymsg", {"colonyname": colonyname}, prvkey)

    def get_colony(self, colonyname: str, prvkey: str) -> Colony:
        """Fetch one colony by name."""
        return self._rpc("getcolonymsg", {"colonyname": colonyname}, prvkey)

    def get_colonies(self, prvkey: str) -> list[Colony]:
        """List every colony on the server. Needs the server key."""
        return self._rpc_list("getcoloniesmsg", {}, prvkey)

    # -- executors --

    def add_executor(self, executor: Executor, prvkey: str) -> Executor:
        """Register an executor; it stays pending until a colony owner approves it."""
        return self._rpc("addexecutormsg", {"executor": executor}, prvkey)

    def approve_executor(self, colonyname: str, executorname: str, prvkey: str) -> None:
        """Approve a pending executor. Needs the colony key."""
        self._rpc(
            "approveexecutormsg",
            {"colonyname": colonyname, "executorname": executorname},
            prvkey,
        )

    def reject_executor(self, colonyname: str, executorname: str, prvkey: str) -> None:
        """Reject an executor so it can no longer be assigned work."""
        self._rpc(
            "rejectexecutormsg",
            {"colonyname": colonyname, "executorname": executorname},
            prvkey,
        )

    def remove_executor(self, colonyname: str, executorname: str, prvkey: str) -> None:
        """Deregister an executor from *colonyname*."""
        self._rpc(
            "removeexecutormsg",
            {"colonyname": colonyname, "executorname": executorname},
            prvkey,
        )

    def get_executor(self, colonyname: str, executorname: str, prvkey: str) -> Executor:
        """Fetch one executor by name."""
        return self._rpc(
            "getexecutormsg",
            {"colonyname": colonyname, "executorname": executorname},
            prvkey,
        )

    def get_executors(self, colonyname: str, prvkey: str) -> list[Executor]:
        """List the executors registered in *colonyname*."""
        return self._rpc_list("getexecutorsmsg", {"colonyname": colonyname}, prvkey)

    # -- processes --

    def submit(self, spec: FunctionSpec, prvkey: str) -> Process:
        """Submit a function spec; returns the created (waiting) process."""
        return self._rpc("submitfuncspecmsg", {"spec": spec}, prvkey)

    def assign(self, colonyname: str, timeout: int, prvkey: str) -> Process:
        """Wait up to *timeout* seconds for the server to assign a process.

        The server answers with an ``RPCFailure`` when nothing could be
        assigned in time.
        """
        return self._rpc(
            "assignprocessmsg", {"colonyname": colonyname, "timeout": timeout}, prvkey
        )

    def close(self, processid: str, prvkey: str, output: list[Any] | None = None) -> None:
        """Close a process as successful, optionally with its output."""
        self._rpc(
            "closesuccessfulmsg",
            {"processid": processid, "out": list(output or [])},
            prvkey,
        )

    def fail(self, processid: str, prvkey: str, errors: list[str] | None = None) -> None:
        """Close a process as failed."""
        self._rpc(
            "closefailedmsg",
            {"processid": processid, "errors": list(errors or [])},
            prvkey,
        )

    def get_process(self, processid: str, prvkey: str) -> Process:
        """Fetch one process, including its spec and output."""
        return self._rpc("getprocessmsg", {"processid": processid}, prvkey)

    def get_processes(
        self, colonyname: str, count: int, state: int, prvkey: str
    ) -> list[Process]:
        """List up to *count* processes of *colonyname* currently in *state*."""
        return self._rpc_list(
            "getprocessesmsg",
            {"colonyname": colonyname, "count": count, "state": state},
            prvkey,
        )

    def remove_process(self, processid: str, prvkey: str) -> None:
        """Remove a single process (the server's ``all`` flag is always false)."""
        self._rpc("removeprocessmsg", {"processid": processid, "all": False}, prvkey)

    def remove_all_processes(self, colonyname: str, state: int, prvkey: str) -> None:
        """Remove every process of *colonyname* in *state*."""
        self._rpc(
            "removeallprocessesmsg", {"colonyname": colonyname, "state": state}, prvkey
        )

    def set_output(self, processid: str, output: list[Any], prvkey: str) -> None:
        """Replace the output of a running process without closing it."""
        self._rpc("setoutputmsg", {"processid": processid, "out": list(output)}, prvkey)

    def add_attribute(self, attribute: Attribute, prvkey: str) -> Attribute:
        """Attach an in/out/err/env attribute to a process (see ``new_attribute``)."""
        return self._rpc("addattributemsg", {"attribute": attribute}, prvkey)

    # -- workflows --

    def submit_workflow(self, workflowspec: WorkflowSpec, prvkey: str) -> ProcessGraph:
        """Submit a workflow; returns the process graph tying its processes together."""
        return self._rpc("submitworkflowspecmsg", {"spec": workflowspec}, prvkey)

    def get_processgraph(self, processgraphid: str, prvkey: str) -> ProcessGraph:
        """Fetch one process graph by id."""
        return self._rpc(
            "getprocessgraphmsg", {"processgraphid": processgraphid}, prvkey
        )

    def get_processgraphs(
        self, colonyname: str, count: int, state: int, prvkey: str
    ) -> list[ProcessGraph]:
        """List up to *count* process graphs of *colonyname* in *state*."""
        return self._rpc_list(
            "getprocessgraphsmsg",
            {"colonyname": colonyname, "count": count, "state": state},
            prvkey,
        )

    def remove_processgraph(self, processgraphid: str, prvkey: str) -> None:
        """Remove one process graph and the processes it owns."""
        self._rpc(
            "removeprocessgraphmsg",
            {"processgraphid": processgraphid, "all": False},
            prvkey,
        )

    def remove_all_processgraphs(self, colonyname: str, state: int, prvkey: str) -> None:
        """Remove every process graph of *colonyname* in *state*."""
        self._rpc(
            "removeallprocessgraphsmsg",
            {"colonyname": colonyname, "state": state},
            prvkey,
        )

    # -- logs --

    def add_log(self, processid: str, message: str, prvkey: str) -> None:
        """Append a log line to a running process. Needs the assigned executor's key."""
        self._rpc("addlogmsg", {"processid": processid, "message": message}, prvkey)

    def get_logs(
        self,
        colonyname: str,
        processid: str,
        executorname: str,
        count: int,
        since: int,
        prvkey: str,
    ) -> list[Log]:
        """Fetch up to *count* log lines newer than *since* (unix nanoseconds).

        Empty *processid* or *executorname* widen the query to the whole colony
        or to every executor.
        """
        return self._rpc_list(
            "getlogsmsg",
            {
                "colonyname": colonyname,
                "processid": processid,
                "executorname": executorname,
                "count": count,
                "since": since,
            },
            prvkey,
        )

    # -- channels --

    def channel_append(
        self,
        processid: str,
        name: str,
        data: str,
        data_type: str,
        prvkey: str,
        inreplyto: int = 0,
    ) -> ChannelEntry | None:
        """Append an entry to a process channel.

        The server assigns the sequence number and returns the stored entry.
        *inreplyto* is the sequence of the entry being answered, 0 for none.
        """
        return self._rpc(
            "channelappendmsg",
            {
                "processid": processid,
                "name": name,
                "data": data,
                "type": data_type,
                "inreplyto": inreplyto,
            },
            prvkey,
        )

    def channel_read(
        self, processid: str, name: str, afterseq: int, limit: int, prvkey: str
    ) -> list[ChannelEntry]:
        """Read up to *limit* entries with a sequence number above *afterseq*."""
        return self._rpc_list(
            "channelreadmsg",
            {"processid": processid, "name": name, "afterseq": afterseq, "limit": limit},
            prvkey,
        )

    # -- statistics --

    def get_statistics(self, colonyname: str, prvkey: str) -> Statistics:
        """Executor and process counters for *colonyname*."""
        return self._rpc("getcolonystatsmsg", {"colonyname": colonyname}, prvkey)

    # -- function registry --

    def add_function(self, function: Function, prvkey: str) -> Function:
        """Register a function an executor offers."""
        return self._rpc("addfunctionmsg", {"fun": function}, prvkey)

    def get_functions(
        self, colonyname: str, prvkey: str, executorname: str = ""
    ) -> list[Function]:
        """List registered functions, optionally only those of *executorname*."""
        return self._rpc_list(
            "getfunctionsmsg",
            {"colonyname": colonyname, "executorname": executorname},
            prvkey,
        )

    def remove_function(self, functionid: str, prvkey: str) -> None:
        """Deregister a function by id."""
        self._rpc("removefunctionmsg", {"functionid": functionid}, prvkey)

    # -- blueprint definitions --

    def add_blueprint_definition(
        self, definition: BlueprintDefinition, prvkey: str
    ) -> BlueprintDefinition:
        """Register a blueprint kind and the executor type that reconciles it."""
        return self._rpc(
            "addblueprintdefinitionmsg", {"blueprintdefinition": definition}, prvkey
        )

    def get_blueprint_definition(
        self, colonyname: str, name: str, prvkey: str
    ) -> BlueprintDefinition:
        """Fetch one blueprint definition by name."""
        return self._rpc(
            "getblueprintdefinitionmsg", {"colonyname": colonyname, "name": name}, prvkey
        )

    def get_blueprint_definitions(
        self, colonyname: str, prvkey: str
    ) -> list[BlueprintDefinition]:
        """List the blueprint definitions of *colonyname*."""
        return self._rpc_list(
            "getblueprintdefinitionsmsg", {"colonyname": colonyname}, prvkey
        )

    def remove_blueprint_definition(self, colonyname: str, name: str, prvkey: str) -> None:
        """Remove a blueprint definition by name."""
        self._rpc(
            "removeblueprintdefinitionmsg",
            {"colonyname": colonyname, "name": name},
            prvkey,
        )

    # -- blueprints --

    def add_blueprint(self, blueprint: Blueprint, prvkey: str) -> Blueprint:
        """Create a blueprint; its kind must match a registered definition."""
        return self._rpc("addblueprintmsg", {"blueprint": blueprint}, prvkey)

    def get_blueprint(self, colonyname: str, name: str, prvkey: str) -> Blueprint:
        """Fetch one blueprint by name."""
        return self._rpc(
            "getblueprintmsg", {"colonyname": colonyname, "name": name}, prvkey
        )

    def get_blueprints(
        self, colonyname: str, prvkey: str, kind: str = "", location: str = ""
    ) -> list[Blueprint]:
        """List blueprints of *colonyname*.

        Empty *kind* or *location* match everything; otherwise only blueprints
        of that kind or placed at that location are returned.
        """
        return self._rpc_list(
            "getblueprintsmsg",
            {"colonyname": colonyname, "kind": kind, "location": location},
            prvkey,
        )

    def update_blueprint(
        self, blueprint: Blueprint, prvkey: str, force_generation: bool = False
    ) -> Blueprint:
        """Replace a blueprint's spec.

        The server bumps the generation only when the spec changed, unless
        *force_generation* is set.
        """
        return self._rpc(
            "updateblueprintmsg",
            {"blueprint": blueprint, "forcegeneration": force_generation},
            prvkey,
        )

    def remove_blueprint(self, colonyname: str, name: str, prvkey: str) -> None:
        """Remove a blueprint by name."""
        self._rpc("removeblueprintmsg", {"colonyname": colonyname, "name": name}, prvkey)

    def update_blueprint_status(
        self, colonyname: str, name: str, status: dict[str, Any], prvkey: str
    ) -> None:
        """Report the observed state of a blueprint's resources.

        Used by reconcilers; *status* replaces the stored status wholesale and
        leaves the spec and generation untouched.
        """
        self._rpc(
            "updateblueprintstatusmsg",
            {"colonyname": colonyname, "name": name, "status": status},
            prvkey,
        )

    def reconcile_blueprint(
        self, colonyname: str, name: str, prvkey: str, force: bool = False
    ) -> Process:
        """Ask the blueprint's reconciler to run; returns the reconcile process."""
        return self._rpc(
            "reconcileblueprintmsg",
            {"colonyname": colonyname, "name": name, "force": force},
            prvkey,
        )

    # -- subscriptions --

    def subscribe_process(
        self,
        colonyname: str,
        processid: str,
        executortype: str,
        state: int,
        timeout: int,
        prvkey: str,
        consumer: Consumer | None = None,
    ) -> SubscriptionResult:
        """Wait for *processid* to reach *state*."""
        return subscribe(
            self.config,
            "subscribeprocessmsg",
            {
                "colonyname": colonyname,
                "processid": processid,
                "executortype": executortype,
                "state": state,
                "timeout": timeout,
            },
            prvkey,
            timeout,
            consumer,
        )

    def subscribe_processes(
        self,
        colonyname: str,
        executortype: str,
        state: int,
        timeout: int,
        prvkey: str,
        consumer: Consumer | None = None,
    ) -> SubscriptionResult:
        """Receive processes of *executortype* as they enter *state*."""
        return subscribe(
            self.config,
            "subscribeprocessesmsg",
            {
                "colonyname": colonyname,
                "executortype": executortype,
                "state": state,
                "timeout": timeout,
            },
            prvkey,
            timeout,
            consumer,
        )

    def subscribe_channel(
        self,
        processid: str,
        name: str,
        afterseq: int,
        timeout: int,
        prvkey: str,
        consumer: Consumer | None = None,
    ) -> SubscriptionResult:
        """Stream channel entries with a sequence number above *afterseq*."""
        return subscribe(
            self.config,
            "subscribechannelmsg",
            {"processid": processid, "name": name, "afterseq": afterseq, "timeout": timeout},
            prvkey,
            timeout,
            consumer,
        )

    # -- internal helpers --

    def _rpc(self, payload_type: str, fields: dict[str, Any], prvkey: str) -> Any:
        logger.debug("Sending %s to %s", payload_type, self.config.server_url)
        reply = rpc.send(self.config, compose(payload_type, fields, prvkey))
        if not reply.strip():
            return None
        try:
            return json.loads(reply)
        except ValueError as e:
            raise EnvelopeError(f"{payload_type} reply is not valid JSON: {e}") from e

    def _rpc_list(self, payload_type: str, fields: dict[str, Any], prvkey: str) -> list:
        return self._rpc(payload_type, fields, prvkey) or []
