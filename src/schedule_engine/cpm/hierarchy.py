import pandas as pd

# ---------------------------------------------------------
# INDENT HIERARCHY
# ---------------------------------------------------------

def resolve_hierarchy(df: pd.DataFrame):
    """
    Derive grouping purely from row order and Indent.

    Row i is a group when the rows right after it are indented deeper.
    Its descendants are every following row with Indent > Indent[i],
    up to the first row that is not.

    Returns:
      descendants:        {index: [descendant indices]}  (transitive)
      groups:             {group indices}
      direct_child_count: {index: number of descendants at Indent[i] + 1}
    """
    indents = df["Indent"].fillna(0).astype(int).tolist()

    descendants = {}
    groups = set()
    direct_child_count = {}

    for i, my_indent in enumerate(indents):
        children = []
        direct = 0

        for j in range(i + 1, len(indents)):
            if indents[j] <= my_indent:
                break
            children.append(j)
            if indents[j] == my_indent + 1:
                direct += 1

        if children:
            descendants[i] = children
            groups.add(i)
            direct_child_count[i] = direct

    return descendants, groups, direct_child_count
