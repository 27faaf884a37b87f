from compose import run_app

from app.models import DashboardViewModel, HomeViewModel
from app.screens.dashboard import DashboardScreen
from app.screens.home import home_screen


def main() -> None:
    vm = HomeViewModel()
    dashboard = DashboardScreen(DashboardViewModel())
    run_app(lambda: home_screen(vm), dashboard.render)


if __name__ == "__main__":
    main()
