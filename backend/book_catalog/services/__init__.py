# Services package init
"""
Book Catalogue Backend — Services Layer
========================================

What:  Business rules between the routes (HTTP) and the models (persistence).
How:   Plain module-level async functions that take the request's session and
       return `Ok(...)` / `Err(ServiceError)`. There is one implementation of
       each service, so there are no service classes to inject.

Service Inventory:
    - auth_service: register, authenticate, issue_token, verify_token, get_user
    - book_service: list/filter/recent reads, create, update, delete, change_state
    - security:     bcrypt hashing and JWT signing primitives used by auth_service
"""
