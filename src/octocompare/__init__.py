"""Compare Octopus Energy tariffs against historical consumption."""
