"""Service layer: form operations returning ServiceResult."""
