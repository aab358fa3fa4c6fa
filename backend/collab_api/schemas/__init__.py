# Schemas package: request/response contracts
