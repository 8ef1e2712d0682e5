"""
Built-in data: the starter menu shown to guests and seeded for new accounts,
the default restaurant profile, and table names.
"""

from bistro.schemas import Category, MenuItem, RestaurantProfile, TemporaryId

PROFILES_TABLE = "profiles"
MENU_ITEMS_TABLE = "menu_items"
ORDERS_TABLE = "orders"

CURRENCY_SYMBOL = "₹"
DEFAULT_RECEIPT_FOOTER = "Thank you for visiting!"
DELETE_ITEM_PROMPT = "Permanently remove this dish from the menu?"

SAMPLE_MENU: tuple[MenuItem, ...] = (
    MenuItem(
        id=TemporaryId(token="1"),
        name="Truffle Mushroom Risotto",
        description="Arborio rice slowly cooked with wild mushrooms, finished with white truffle oil and parmesan.",
        price=18.50,
        category=Category.MAIN_COURSE,
        image="https://picsum.photos/id/42/800/600",
    ),
    MenuItem(
        id=TemporaryId(token="2"),
        name="Seared Scallops",
        description="Fresh Atlantic scallops seared to perfection with pea purée and crispy pancetta.",
        price=14.00,
        category=Category.STARTERS,
        image="https://picsum.photos/id/102/800/600",
    ),
    MenuItem(
        id=TemporaryId(token="3"),
        name="Lava Chocolate Cake",
        description="Rich dark chocolate cake with a molten center, served with Madagascan vanilla gelato.",
        price=9.50,
        category=Category.DESSERTS,
        image="https://picsum.photos/id/106/800/600",
    ),
    MenuItem(
        id=TemporaryId(token="4"),
        name="Signature Old Fashioned",
        description="Bourbon aged in oak barrels, hints of orange peel and house-made aromatic bitters.",
        price=12.00,
        category=Category.BEVERAGES,
        image="https://picsum.photos/id/163/800/600",
    ),
    MenuItem(
        id=TemporaryId(token="5"),
        name="Garden Harvest Salad",
        description="Organic greens, heirloom tomatoes, cucumber, goat cheese, and balsamic glaze.",
        price=11.50,
        category=Category.STARTERS,
        image="https://picsum.photos/id/493/800/600",
    ),
    MenuItem(
        id=TemporaryId(token="6"),
        name="Wagyu Beef Burger",
        description="Premium wagyu patty, caramelized onions, aged cheddar, and truffle aioli on brioche.",
        price=22.00,
        category=Category.MAIN_COURSE,
        image="https://picsum.photos/id/488/800/600",
    ),
)

DEFAULT_PROFILE = RestaurantProfile(
    name="Dhruv Restaurants",
    address="123 Culinary Avenue, Food City, FC 90210",
    contact="9876543210",
    logo="",
    owner_name="Dhruv",
    receipt_header="Thank you for ordering from Dhruv Restaurants! 🥗\nWe serve the best food in town.",
    receipt_footer="We hope you enjoy your meal! ✨\nPlease leave us a review on Google.",
    theme_color="indigo",
    font_pair="modern",
)
