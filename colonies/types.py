"""Typed dictionaries for the ColonyOS wire format and domain objects.

Domain objects are opaque to the protocol layers; these shapes document the
JSON the server produces and accepts. Field names follow the server's
lowercase JSON keys.
"""

from typing import Any, TypedDict

# Process states
WAITING = 0
RUNNING = 1
SUCCESS = 2
FAILED = 3

# Executor states
PENDING = 0
APPROVED = 1
REJECTED = 2

# Attribute types
IN = 0
OUT = 1
ERR = 2
ENV = 4


class RPCMsg(TypedDict):
    signature: str
    payloadtype: str
    payload: str


class RPCReplyMsg(TypedDict):
    payloadtype: str
    payload: str
    error: bool


class Failure(TypedDict):
    status: int
    message: str


class Colony(TypedDict):
    colonyid: str
    name: str


class Executor(TypedDict, total=False):
    executorid: str
    executorname: str
    executortype: str
    colonyname: str
    state: int
    requirefuncreg: bool
    commissiontime: str
    lastheardfromtime: str
    locationname: str
    capabilities: dict[str, Any]
    allocations: dict[str, Any]


class Conditions(TypedDict, total=False):
    colonyname: str
    executornames: list[str]
    executortype: str
    dependencies: list[str]
    nodes: int
    cpu: str
    processes: int
    processespernode: int
    mem: str
    storage: str
    gpu: dict[str, Any]
    walltime: int


class FunctionSpec(TypedDict, total=False):
    nodename: str
    funcname: str
    args: list[Any]
    kwargs: dict[str, Any]
    priority: int
    maxwaittime: int
    maxexectime: int
    maxretries: int
    conditions: Conditions
    label: str
    fs: dict[str, Any]
    env: dict[str, str]
    channels: list[str]


class WorkflowSpec(TypedDict):
    colonyname: str
    functionspecs: list[FunctionSpec]


class Attribute(TypedDict, total=False):
    attributeid: str
    targetid: str
    targetcolonyname: str
    targetprocessgraphid: str
    attributetype: int
    key: str
    value: str


class Process(TypedDict, total=False):
    processid: str
    initiatorid: str
    initiatorname: str
    assignedexecutorid: str
    isassigned: bool
    state: int
    prioritytime: int
    submissiontime: str
    starttime: str
    endtime: str
    waitdeadline: str
    execdeadline: str
    retries: int
    attributes: list[Attribute]
    spec: FunctionSpec
    waitforparents: bool
    parents: list[str]
    children: list[str]
    processgraphid: str
    input: list[Any]
    output: list[Any]
    errors: list[str]


class ProcessGraph(TypedDict, total=False):
    processgraphid: str
    initiatorid: str
    initiatorname: str
    colonyname: str
    rootprocessids: list[str]
    state: int
    submissiontime: str
    starttime: str
    endtime: str
    processids: list[str]


class Log(TypedDict, total=False):
    processid: str
    colonyname: str
    executorname: str
    message: str
    timestamp: int


class ChannelEntry(TypedDict, total=False):
    sequence: int
    data: str
    type: str
    inreplyto: int


class Function(TypedDict, total=False):
    functionid: str
    executorname: str
    executortype: str
    colonyname: str
    funcname: str
    counter: int
    minwaittime: float
    maxwaittime: float
    minexectime: float
    maxexectime: float
    avgwaittime: float
    avgexectime: float


class Statistics(TypedDict, total=False):
    colonies: int
    executors: int
    waitingprocesses: int
    runningprocesses: int
    successfulprocesses: int
    failedprocesses: int
    waitingworkflows: int
    runningworkflows: int
    successfulworkflows: int
    failedworkflows: int


class BlueprintDefinition(TypedDict, total=False):
    blueprintdefinitionid: str
    name: str
    colonyname: str
    kind: str
    executortype: str
    specschema: dict[str, Any]
    statusschema: dict[str, Any]


class Blueprint(TypedDict, total=False):
    blueprintid: str
    kind: str
    metadata: dict[str, Any]
    handler: dict[str, Any]
    spec: dict[str, Any]
    status: dict[str, Any]
    generation: int
    reconciledgeneration: int


def new_colony(colonyid: str, name: str) -> Colony:
    return {"colonyid": colonyid, "name": name}


def new_executor(
    executorname: str, executorid: str, executortype: str, colonyname: str
) -> Executor:
    """Build an executor registration; the server assigns state and timestamps."""
    return {
        "executorid": executorid,
        "executorname": executorname,
        "executortype": executortype,
        "colonyname": colonyname,
        "state": PENDING,
    }


def new_function_spec(
    funcname: str,
    executortype: str,
    colonyname: str,
    args: list[Any] | None = None,
    kwargs: dict[str, Any] | None = None,
    maxwaittime: int = -1,
    maxexectime: int = -1,
    maxretries: int = -1,
    priority: int = 0,
    env: dict[str, str] | None = None,
) -> FunctionSpec:
    """Build a function spec targeting *executortype* executors in *colonyname*.

    ``-1`` for the time and retry limits means no limit.
    """
    return {
        "funcname": funcname,
        "args": list(args or []),
        "kwargs": dict(kwargs or {}),
        "priority": priority,
        "maxwaittime": maxwaittime,
        "maxexectime": maxexectime,
        "maxretries": maxretries,
        "conditions": {
            "colonyname": colonyname,
            "executortype": executortype,
            "executornames": [],
            "dependencies": [],
        },
        "env": dict(env or {}),
    }


def new_attribute(
    targetcolonyname: str, targetid: str, key: str, value: str,
    attributetype: int = OUT,
) -> Attribute:
    return {
        "targetid": targetid,
        "targetcolonyname": targetcolonyname,
        "targetprocessgraphid": "",
        "attributetype": attributetype,
        "key": key,
        "value": value,
    }
