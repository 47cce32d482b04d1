"""interfaces/ — thin front-ends over GatewayClient."""
