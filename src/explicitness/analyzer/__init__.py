"""Classification engine: scope tracking, classifiers, rule table, aggregation."""
