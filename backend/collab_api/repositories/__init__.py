# Repositories package: storage access per aggregate
