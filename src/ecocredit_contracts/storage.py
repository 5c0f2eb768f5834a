"""
Ledger storage

Key-value stores backing the contract state. The registry is kept behind
``ProjectStore`` so it can be exercised without any transport in front.
"""

import copy
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Protocol

from .types import Project


class ProjectStore(Protocol):
    """Project registry keyed by project id"""

    def get(self, project_id: str) -> Optional[Project]: ...

    def put(self, project: Project) -> None: ...

    def __contains__(self, project_id: object) -> bool: ...

    def ids(self) -> List[str]: ...

    def snapshot(self) -> object: ...

    def restore(self, snapshot: object) -> None: ...


class InMemoryProjectStore:
    """Dictionary-backed registry preserving registration order"""

    def __init__(self):
        self._projects: Dict[str, Project] = {}

    def get(self, project_id: str) -> Optional[Project]:
        return self._projects.get(project_id)

    def put(self, project: Project) -> None:
        self._projects[project.project_id] = project

    def __contains__(self, project_id: object) -> bool:
        return project_id in self._projects

    def __iter__(self) -> Iterator[Project]:
        return iter(list(self._projects.values()))

    def __len__(self) -> int:
        return len(self._projects)

    def ids(self) -> List[str]:
        return list(self._projects)

    def snapshot(self) -> Dict[str, Project]:
        return copy.deepcopy(self._projects)

    def restore(self, snapshot: object) -> None:
        self._projects = snapshot  # type: ignore[assignment]


@dataclass()
class BalanceBook:
    """Outstanding and retired credits per account, plus global counters"""

    balances: Dict[str, int] = field(default_factory=dict)
    retired: Dict[str, int] = field(default_factory=dict)
    total_minted: int = 0
    total_supply: int = 0
    total_retired: int = 0

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def retired_of(self, account: str) -> int:
        return self.retired.get(account, 0)

    def credit(self, account: str, amount: int) -> None:
        self.balances[account] = self.balance_of(account) + amount

    def debit(self, account: str, amount: int) -> None:
        self.balances[account] = self.balance_of(account) - amount

    def snapshot(self) -> "BalanceBook":
        return copy.deepcopy(self)
