"""Domain services shared by the REST and RPC layers."""
