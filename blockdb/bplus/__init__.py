"""B+ tree files built from data and index blocks."""