from dataclasses import dataclass, field

from compose import MutableStateFlow, StateFlow


@dataclass
class HomeUiState:
    title: str = "Inbox"
    items: list[str] = field(default_factory=list)


@dataclass
class Stats:
    unread: int = 0
    total: int = 0


class HomeViewModel:
    def __init__(self) -> None:
        self._ui_state = MutableStateFlow(HomeUiState())
        self.ui_state: StateFlow[HomeUiState] = self._ui_state

    def refresh(self, items: list[str]) -> None:
        self._ui_state.value = HomeUiState(items=items)


class DashboardViewModel:
    def __init__(self) -> None:
        self.stats: StateFlow[Stats] = MutableStateFlow(Stats())
