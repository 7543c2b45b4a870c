"""
撤销/重做历史

线性快照栈：新的记录会丢弃当前游标之后的重做分支。
撤销/重做本身不会产生新的记录。
"""

from typing import List, Optional, Tuple

from ..logging import get_logger
from .model import Snapshot

log = get_logger()


class HistoryStore:
    """
    快照历史

    状态:
    - Empty: 没有任何记录（cursor == -1）
    - Recording: 至少一条记录，cursor 指向其中之一
    """

    def __init__(self, limit: Optional[int] = None):
        """
        Args:
            limit: 最多保留的记录数，None 表示不限制
        """
        if limit is not None and limit < 1:
            raise ValueError("History limit must be at least 1")
        self._limit = limit
        self._entries: List[Snapshot] = []
        self._cursor = -1

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def entries(self) -> Tuple[Snapshot, ...]:
        return tuple(self._entries)

    @property
    def limit(self) -> Optional[int]:
        return self._limit

    @property
    def is_empty(self) -> bool:
        return not self._entries

    @property
    def current(self) -> Optional[Snapshot]:
        """游标所在的快照"""
        if self._cursor < 0:
            return None
        return self._entries[self._cursor]

    @property
    def can_undo(self) -> bool:
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        return 0 <= self._cursor < len(self._entries) - 1

    def record(self, snapshot: Snapshot) -> None:
        """截断重做分支，追加快照，游标移到末尾"""
        del self._entries[self._cursor + 1:]
        self._entries.append(snapshot)

        if self._limit is not None and len(self._entries) > self._limit:
            del self._entries[: len(self._entries) - self._limit]

        self._cursor = len(self._entries) - 1

    def undo(self) -> Optional[Snapshot]:
        """游标后退一步，返回该位置的快照；无法撤销时返回 None"""
        if not self.can_undo:
            log.debug("Nothing to undo")
            return None
        self._cursor -= 1
        return self._entries[self._cursor]

    def redo(self) -> Optional[Snapshot]:
        """游标前进一步，返回该位置的快照；无法重做时返回 None"""
        if not self.can_redo:
            log.debug("Nothing to redo")
            return None
        self._cursor += 1
        return self._entries[self._cursor]

    def reset(self) -> None:
        """清空历史（切换项目时调用）"""
        self._entries.clear()
        self._cursor = -1

    def __len__(self) -> int:
        return len(self._entries)
