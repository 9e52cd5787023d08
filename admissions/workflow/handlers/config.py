from typing import Awaitable, Callable, Dict, List, Tuple

from sqlalchemy.orm import Session

from admissions.database.models.application import Application, ApplicationStatus
from admissions.schema.application import NotificationReport


TransitionHandler = Callable[[Session, Application, NotificationReport], Awaitable[None]]
TRANSITION_HANDLERS: Dict[Tuple[ApplicationStatus, ApplicationStatus], List[TransitionHandler]] = {}


def on_transition(from_status: ApplicationStatus, to_status: ApplicationStatus):
    def _decorator(fn: TransitionHandler):
        TRANSITION_HANDLERS.setdefault((from_status, to_status), []).append(fn)
        return fn

    return _decorator


def handlers_for(from_status: ApplicationStatus, to_status: ApplicationStatus) -> List[TransitionHandler]:
    return TRANSITION_HANDLERS.get((from_status, to_status), [])
