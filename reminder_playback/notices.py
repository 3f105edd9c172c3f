"""
Dismissible user notices (non-blocking failure reports)
"""

import itertools
from typing import List, Optional

from .logging_utils import get_logger
from .models import Notice

logger = get_logger(__name__)


class NoticeBoard:
    """Collects notices for the UI collaborator to show and dismiss"""

    def __init__(self, max_notices: int = 50):
        self._notices: List[Notice] = []
        self._ids = itertools.count(1)
        self.max_notices = max_notices

    def post(self, message: str, level: str = "info") -> Notice:
        notice = Notice(id=next(self._ids), message=message, level=level)
        self._notices.append(notice)
        # Keep the newest entries only
        if len(self._notices) > self.max_notices:
            del self._notices[:-self.max_notices]
        logger.info(f"Notice posted ({level}): {message}")
        return notice

    def dismiss(self, notice_id: int) -> Optional[Notice]:
        for notice in self._notices:
            if notice.id == notice_id:
                notice.dismissed = True
                return notice
        return None

    def active(self) -> List[Notice]:
        return [n for n in self._notices if not n.dismissed]

    def all(self) -> List[Notice]:
        return list(self._notices)
