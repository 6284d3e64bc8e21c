# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# the use cases of a single aggregate:
#
#   article_service  — faceted listing, CRUD, tagging and favorites for Article
#   user_service     — registration and lookup for User
#
# All service functions accept an AsyncSession as their first argument
# so that the router layer controls the transaction boundary via the
# ``get_db`` dependency.
