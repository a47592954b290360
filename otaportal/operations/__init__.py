"""Operations layer: object storage, key policy and space workflows."""
