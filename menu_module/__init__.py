from menu_module.radial_menu import (
    MenuCallbacks,
    MenuItem,
    RadialMenu,
    SimpleRadialMenu,
    full_menu,
    simple_menu,
)

__all__ = [
    "MenuCallbacks",
    "MenuItem",
    "RadialMenu",
    "SimpleRadialMenu",
    "full_menu",
    "simple_menu",
]
