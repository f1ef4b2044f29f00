"""Services package.

    - rental_service: eligibility, cart, rentals, returns and fines
    - report_service: dashboard and report aggregates
    - errors: error types shared with the models

Import submodules directly, e.g. ``from services.rental_service import
RentalService``.
"""
