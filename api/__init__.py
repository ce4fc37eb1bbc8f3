"""HTTP API for workspace provisioning and billing."""
