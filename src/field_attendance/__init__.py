"""Field Attendance package.

Feature modules (users, attendance, locations, metrics, reports, storage) follow
a thin Flask controller / service / repository split. The ``tracking`` package
holds the check-in, location sampling and check-out lifecycle that runs on the
tracking runtime's event loop.
"""
