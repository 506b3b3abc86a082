"""
Books API — Routes Package
===========================

What:  HTTP route handlers.

Route Inventory:
    - books.py:   /hussainas/v1/books          GET, POST, OPTIONS
                  /hussainas/v1/books/{id}     GET, PUT, PATCH, DELETE, OPTIONS
    - health.py:  GET /health

Handlers stay thin: they read the request, call the BookController and set
response headers. Permissions and shaping live in the controller.
"""
