"""AML, KYC, geographic-risk and sanctions collaborators."""
