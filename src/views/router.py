from dataclasses import dataclass
from typing import List, Type

from textual.screen import Screen

from utils.state import Session
from views.scr_dashboard import DashboardScreen
from views.scr_home import HomeScreen
from views.scr_my_orders import MyOrdersScreen
from views.scr_orders_list import OrdersListScreen
from views.scr_products import ProductsScreen
from views.scr_profile import ProfileScreen


@dataclass(frozen=True)
class Route:
    mode: str
    title: str
    screen: Type[Screen]


def configure_routes(session: Session) -> List[Route]:
    """
    Modes the signed-in user may visit, first one is the landing screen.
    Admins never see customer screens and customers never see admin ones.
    """
    if not session.signed_in:
        return []
    if session.is_admin:
        return [
            Route("dashboard", "Dashboard", DashboardScreen),
            Route("products", "Products", ProductsScreen),
            Route("orders_list", "All Orders", OrdersListScreen),
            Route("profile", "Profile", ProfileScreen),
        ]
    return [
        Route("home", "Home", HomeScreen),
        Route("my_orders", "My Orders", MyOrdersScreen),
        Route("profile", "Profile", ProfileScreen),
    ]
