"""
                Room Service Order Intake

Order-intake backend for hotel and event room service: guests submit
multi-item orders, staff work through the active queue and close them out.

Author: Khalil_Bannouri
Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Khalil_Bannouri"
