from compose import composable, text, use_state


@composable
def profile_screen(user_id: str):
    name, set_name = use_state("Guest")
    profile_card(name)


@composable
def profile_card(name):
    profile_header(name)


@composable
def profile_header(name):
    profile_title(name=name)


@composable
def profile_title(name: str):
    text(name)
