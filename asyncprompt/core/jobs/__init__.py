"""Background segment jobs.

One single-thread pool per job name runs computations off the prompt's
thread; completions flow through a FIFO buffer into a single-threaded
dispatcher that updates the prompt state and debounces redraws.
"""

from .completion_buffer import CompletionBuffer
from .computation import CallableComputation, CommandComputation, Computation
from .dispatcher import CallbackDispatcher, Handler, RestartPolicy
from .scheduler import JobScheduler, PoolState
from .types import CompletionEvent, Job, RunOutput
from .worker import Worker

__all__ = [
    "CallableComputation",
    "CallbackDispatcher",
    "CommandComputation",
    "CompletionBuffer",
    "CompletionEvent",
    "Computation",
    "Handler",
    "Job",
    "JobScheduler",
    "PoolState",
    "RestartPolicy",
    "RunOutput",
    "Worker",
]
