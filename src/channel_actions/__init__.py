"""Channel actions: route agent channel actions to messaging providers."""
