"""Engine layer: condition evaluation, scenario matching, action application, tick loop."""
