"""Tab viewlets and the widgets they draw with."""
