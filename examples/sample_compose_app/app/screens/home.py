from compose import State, column, composable, text

from app.models import HomeUiState, HomeViewModel


@composable
def home_screen(vm: HomeViewModel):
    ui_state = vm.ui_state.collect_as_state()
    with column():
        text("Home")
        home_body(ui_state)


@composable
def home_body(state: State[HomeUiState]):
    with column():
        home_section(state)


@composable
def home_section(state: State[HomeUiState]):
    home_items(state)


@composable
def home_items(state: State[HomeUiState]):
    text(state.value.title)
    for item in state.value.items:
        text(item)
