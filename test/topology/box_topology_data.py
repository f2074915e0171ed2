
# interfaces are given as ((patch, side), (patch, side), orientation)

consistency_data = [
    {
        "nboxes": 1,
        "interfaces": [],
        "auto": True,
        "consistent": True,
    },
    {
        "nboxes": 2,
        "interfaces": [((0, 2), (1, 1), (True,))],
        "auto": True,
        "consistent": True,
    },
    {
        "nboxes": 2,
        "interfaces": [((0, 2), (1, 1), (True,))],
        "auto": False,
        "consistent": False,
    },
    {
        "nboxes": 3,
        "interfaces": [((0, 3), (1, 1), (True,)),
                       ((1, 3), (2, 1), (True,)),
                       ((2, 3), (0, 1), (True,))],
        "auto": True,
        "consistent": True,
    },
    {
        "nboxes": 0,
        "interfaces": [],
        "auto": True,
        "consistent": True,
    },
]

corner_data = [
    # two squares side by side: the shared corners lie on the boundary
    {
        "nboxes": 2,
        "interfaces": [((0, 2), (1, 1), (True,))],
        "start": (0, 2),
        "cycle": [(0, 2), (1, 1)],
        "closed": False,
        "n_singular": 0,
        "n_regular": 0,
    },
    # the second square upside down
    {
        "nboxes": 2,
        "interfaces": [((0, 2), (1, 1), (False,))],
        "start": (0, 2),
        "cycle": [(0, 2), (1, 3)],
        "closed": False,
        "n_singular": 0,
        "n_regular": 0,
    },
    # three patches around one interior vertex
    {
        "nboxes": 3,
        "interfaces": [((0, 3), (1, 1), (True,)),
                       ((1, 3), (2, 1), (True,)),
                       ((2, 3), (0, 1), (True,))],
        "start": (0, 1),
        "cycle": [(0, 1), (2, 1), (1, 1)],
        "closed": True,
        "n_singular": 1,
        "n_regular": 0,
    },
    # 2x2 grid, patch (i, j) has index i + 2*j
    {
        "nboxes": 4,
        "interfaces": [((0, 2), (1, 1), (True,)),
                       ((2, 2), (3, 1), (True,)),
                       ((0, 4), (2, 3), (True,)),
                       ((1, 4), (3, 3), (True,))],
        "start": (0, 4),
        "cycle": [(0, 4), (1, 3), (3, 1), (2, 2)],
        "closed": True,
        "n_singular": 0,
        "n_regular": 1,
    },
]
