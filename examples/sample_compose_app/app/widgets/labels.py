from compose import State, composable, text

from app.models import Stats


@composable
def label_text(value: State[str]):
    text(value.value)


@composable
def stat_label(stats: State[Stats]):
    text(f"{stats.value.unread} unread of {stats.value.total}")
