"Exceptions raised by, or used to reject the Futures of, asyncflow primitives"
import enum
import typing as t

class AsyncFlowError(Exception):
    pass

class Kind(enum.Enum):
    "How a Loop was terminated"
    TERMINATE = "Terminate"
    CANCEL = "Cancel"
    KILL = "Kill"
    ERROR = "Error"

class LoopTerminated(AsyncFlowError):
    """A Loop stopped without its handle reporting completion.

    The string form is `[<Kind>] <message>`, for example
    `[Kill] maximum iterations reached.`

    """
    def __init__(self, kind: Kind, message: str) -> None:
        super().__init__(f'[{kind.value}] {message}')
        self.kind = kind
        self.message = message

class NotFound(AsyncFlowError, LookupError):
    """List.find ran through the whole sequence without a match.

    This is not a failure of the search, just its empty answer.

    """
    pass

class ThreadError(AsyncFlowError):
    """The handle of a Thread raised inside its worker.

    Live exception objects can't cross the process boundary, so we only get
    the message and the formatted stack of the original.

    """
    def __init__(self, message: str, stack: t.Optional[str]=None) -> None:
        super().__init__(message)
        self.message = message
        self.stack = stack

class ThreadTerminated(AsyncFlowError):
    "The Thread was terminated while a call was in flight"
    def __init__(self) -> None:
        super().__init__("Terminated")

class NotStarted(AsyncFlowError):
    pass

class AlreadyStarted(AsyncFlowError):
    pass

class AlreadyExecuting(AsyncFlowError):
    pass
