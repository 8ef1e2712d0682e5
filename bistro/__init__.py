"""
                Bistro Storefront

Restaurant storefront and back-office controller: menu browsing, cart,
shareable invoices and a small admin console, synchronized with a managed
auth + table backend through a hybrid Mock/Real service architecture.

Author: Khalil_Bannouri
Version: 4.0.0
License: MIT
"""

__version__ = "4.0.0"
__author__ = "Khalil_Bannouri"
