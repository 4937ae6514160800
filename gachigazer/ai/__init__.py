"""Chat-completion provider clients, shared types and the provider registry."""