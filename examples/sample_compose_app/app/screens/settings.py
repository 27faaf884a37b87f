from compose import MutableState, composable, mutable_state_of, remember, switch, text


@composable
def settings_screen():
    dark_mode = remember(lambda: mutable_state_of(False))
    settings_list(dark_mode)


@composable
def settings_list(dark_mode: MutableState[bool]):
    if dark_mode.value:
        text("Dark theme enabled")
    settings_toggle(dark_mode)


@composable
def settings_toggle(dark_mode: MutableState[bool]):
    def on_change(checked: bool) -> None:
        dark_mode.value = checked

    switch(label="Dark mode", on_change=on_change)
