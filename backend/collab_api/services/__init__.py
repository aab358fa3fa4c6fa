# Services package: business logic layer
