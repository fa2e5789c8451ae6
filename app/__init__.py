"""
SlotKeeper application package.

Layered the same way for every endpoint:

  app/repositories/   pure I/O: path resolution, stat/read/write/delete.
  app/services/       business logic: slot transfer/restore, document
                      normalisation, response bodies.

``slotkeeper_server.create_app`` builds one instance of each service from the
resolved configuration and the Flask routes call them directly.
"""
