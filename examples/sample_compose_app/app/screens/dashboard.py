from compose import State, composable

from app.models import DashboardViewModel, Stats
from app.widgets import stat_label


class DashboardScreen:
    def __init__(self, vm: DashboardViewModel) -> None:
        self.vm = vm

    @composable
    def render(self):
        stats = self.vm.stats.collect_as_state()
        self.stats_panel(stats)

    @composable
    def stats_panel(self, stats: State[Stats]):
        stat_label(stats)
