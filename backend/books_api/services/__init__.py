"""
Books API — Services Layer
===========================

What:  Everything between the routes and the database.

Service Inventory:
    - registry.py         EntityRegistry: declared entity types (Book)
    - entity_store.py     EntityStore: typed-document persistence
    - authorization.py    Authorizer / RoleAuthorizer: capability decisions
    - sanitize.py         Input sanitizers applied before storage
    - content.py          ContentRenderer: output filter chain
    - book_controller.py  BookController: the Book resource controller
"""
