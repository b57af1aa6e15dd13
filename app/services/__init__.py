"""
                        Services Module

Business logic of the order-intake service.

Services:
    - users: display-name identities and the admin role policy
    - orders: transactional order store and listing queries
"""
