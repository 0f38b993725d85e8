import numpy as np, matplotlib
matplotlib.use('Agg')
from matplotlib import rcParams as rc

Fontsize = 18
rc["legend.framealpha"] = 0
rc["legend.labelspacing"] = 0.1
rc['figure.figsize'] = (12,7)
rc['axes.autolimit_mode'] = 'data'
rc['axes.xmargin'] = 0.02
rc['axes.ymargin'] = 0.10
rc['axes.titlesize'] = Fontsize
rc['axes.labelsize'] = Fontsize
rc['xtick.direction'] = 'in'
rc['ytick.direction'] = 'in'
rc['xtick.labelsize'] = Fontsize
rc['ytick.labelsize'] = Fontsize
rc['axes.grid'] = True
rc['grid.linestyle'] = '-'
rc['grid.alpha'] = 0.2
rc['legend.fontsize'] = int(Fontsize*0.9)
rc['legend.loc'] = 'upper left'
rc["figure.autolayout"] = True
rc["savefig.dpi"] = 200
rc["font.family"] = "serif"
rc["lines.markeredgecolor"] = matplotlib.colors.to_rgba('black', 0.5)
rc["lines.markeredgewidth"] = 0.01
rc["legend.markerscale"] = 1.5

#Triangle, Square, Circle, Star, Diamond
Markers = ['o','^', 's', '*', 'D']
MarkerScales = np.array([1.1, 1.25, 1., 1.5, 1.])
