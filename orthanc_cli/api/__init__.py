"""REST transport for the Orthanc archive."""
