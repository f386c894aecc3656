"""External merge sort of heap files by name and surname."""