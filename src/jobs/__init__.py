"""Job state, stores, status feed and the conversion orchestrator."""
