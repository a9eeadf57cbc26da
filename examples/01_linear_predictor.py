import numpy as np
from latent_effects import Component, Likelihood, Model, GaussianPosterior


rng = np.random.default_rng(0)
x = np.linspace(0, 10, 20)
data = {"x": x, "y": 1.0 + 0.5 * x + rng.normal(0, 0.3, size=x.size)}

model = Model.build(
    [Component.intercept("Intercept"), Component.fixed("beta", "x")],
    Likelihood(data=data),
)
print(model.summary())

# A fitted result would normally come from the solver; a Gaussian stand-in
# with the same mean/sd layout is enough to evaluate predictions.
posterior = GaussianPosterior.from_blocks(
    mean={"Intercept": [1.0], "beta": [0.5]},
    sd={"Intercept": [0.1], "beta": [0.02]},
)

# Posterior mode, evaluated through the component effects
state = model.state(posterior, property="mode")
eta = model.evaluate(state, data=data, predictor="Intercept + beta")
print(eta[:5, 0])

# Same predictor through the eval functions at new covariate values
xg = np.linspace(0, 20, 5)
print(model.evaluate(state, predictor="Intercept_eval() + beta_eval(xg)", data={"xg": xg}, include=[]))

# Sampled prediction band
band = model.predict(posterior, {"x": xg}, "exp(Intercept + beta) / (1 + exp(Intercept + beta))", n=500, seed=1)
print(band.round(4))
