from compose import MutableState, State, button, composable, mutable_state_of, remember, row, text


@composable
def counter_screen():
    count = remember(lambda: mutable_state_of(0))
    counter_panel(count)


@composable
def counter_panel(count: MutableState[int]):
    with row():
        counter_display(count)
        counter_buttons(count)


@composable
def counter_display(count: State[int]):
    text(f"Count: {count.value}")


@composable
def counter_buttons(count: MutableState[int]):
    button("+", on_click=lambda: count.set(count.value + 1))
    button("-", on_click=lambda: count.set(count.value - 1))
