import numpy as np
from latent_effects import Component, GaussianPosterior, Likelihood, Model


data = {"site": np.array([1, 1, 2, 3, 3, 3]), "x": np.arange(6.0)}
model = Model.build(
    [Component.intercept("Intercept"), Component.iid("u", "site")],
    Likelihood(data=data),
)
print(model.summary())

posterior = GaussianPosterior.from_blocks(
    mean={"Intercept": [2.0], "u": [0.3, -0.1, -0.2]},
    sd={"Intercept": [0.1], "u": [0.2, 0.2, 0.2]},
    hyperpar={"Precision_for_u": (25.0, 5.0)},
)
states = model.state(posterior, property="sample", n=4, seed=7)

# Sites 4 and 5 were never observed: each state draws one deviate per new
# site from N(0, 1/Precision_for_u) and reuses it within that state.
pred = model.evaluate(
    states,
    predictor="Intercept_eval() + u_eval(c(1, 4, 4, 5))",
    format="matrix",
    include=[],
    seed=3,
)
print(np.round(pred, 3))

# Per-state list output for non-vector predictors
out = model.evaluate(states[:2], predictor="cbind(u_latent, u_latent ** 2)", include=[])
print(type(out).__name__, out[0].shape)
